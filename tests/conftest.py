import os

os.environ.setdefault("OBSERVABILITY_ENABLED", "false")
os.environ.setdefault("STORAGE_BACKEND", "inmemory")

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from campusdesk.auth import create_access_token
from campusdesk.main import create_app
from campusdesk.models import (
    AttendanceStatus,
    Course,
    Exam,
    LongAnswerQuestion,
    MultipleChoiceQuestion,
    ShortAnswerQuestion,
    UserProfile,
    UserRole,
)
from campusdesk.storage.inmemory import InMemoryCampusRepository
from campusdesk.wiring import get_clock, get_repo

NOW = datetime(2025, 3, 20, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


ADMIN = UserProfile(user_id="admin-1", email="admin@college.edu", name="Asha Admin", role=UserRole.ADMIN)
TEACHER = UserProfile(
    user_id="teacher-1",
    email="teacher@college.edu",
    name="Tom Teacher",
    role=UserRole.TEACHER,
    assigned_courses=["bca"],
)
OTHER_TEACHER = UserProfile(
    user_id="teacher-2",
    email="commerce@college.edu",
    name="Cara Commerce",
    role=UserRole.TEACHER,
    assigned_courses=["bcom"],
)
STUDENT = UserProfile(
    user_id="student-1", email="riya@college.edu", name="Riya", role=UserRole.STUDENT,
    admission_no="BCA001", course_id="bca",
)
CLASSMATE = UserProfile(
    user_id="student-2", email="arun@college.edu", name="Arun", role=UserRole.STUDENT,
    admission_no="BCA002", course_id="bca",
)
OUTSIDER = UserProfile(
    user_id="student-3", email="meera@college.edu", name="Meera", role=UserRole.STUDENT,
    admission_no="BCOM001", course_id="bcom",
)


def make_exam(**overrides) -> Exam:
    fields = dict(
        exam_id="midterm",
        name="Midterm Programming",
        course_id="bca",
        start_time=NOW - timedelta(hours=1),
        end_time=NOW + timedelta(hours=2),
        duration=30,
        questions=[
            MultipleChoiceQuestion(
                question_id="q1", text="Which keyword defines a function?", marks=5,
                options=["A", "B", "C"], correct_answer="B",
            ),
            ShortAnswerQuestion(question_id="q2", text="What is a tuple?"),
            LongAnswerQuestion(question_id="q3", text="Explain garbage collection."),
        ],
    )
    fields.update(overrides)
    return Exam(**fields)


def seed(repo: InMemoryCampusRepository) -> None:
    for user in (ADMIN, TEACHER, OTHER_TEACHER, STUDENT, CLASSMATE, OUTSIDER):
        repo.users[user.user_id] = user.model_copy(deep=True)
    repo.courses["bca"] = Course(course_id="bca", name="BCA", subjects=["Python", "DBMS"])
    repo.courses["bcom"] = Course(course_id="bcom", name="B.Com", subjects=["Accounts"])
    exam = make_exam()
    repo.exams[exam.exam_id] = exam


def mark(repo: InMemoryCampusRepository, course_id: str, student_id: str, statuses: dict[date, AttendanceStatus]) -> None:
    ledger = repo.attendance.setdefault(course_id, {})
    for day, status in statuses.items():
        ledger.setdefault(day, {})[student_id] = status


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def repo() -> InMemoryCampusRepository:
    repo = InMemoryCampusRepository()
    seed(repo)
    return repo


@pytest.fixture
def client(repo, clock) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_repo] = lambda: repo
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)


def auth(user: UserProfile) -> dict[str, str]:
    token = create_access_token(user.user_id, user.email, user.role.value)
    return {"Authorization": f"Bearer {token}"}
