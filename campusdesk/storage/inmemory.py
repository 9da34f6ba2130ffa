from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Optional

from campusdesk.errors import Conflict, NotFound
from campusdesk.models import (
    Answer,
    AttendanceLedger,
    AttendanceSettings,
    AttendanceStatus,
    Course,
    Exam,
    ExamSession,
    Result,
    SessionStatus,
    UserProfile,
)
from campusdesk.storage.repo import CampusRepository


class InMemoryCampusRepository(CampusRepository):
    """Dict-backed store. Values are copied in and out like a document store."""

    def __init__(self) -> None:
        self.users: Dict[str, UserProfile] = {}
        self.courses: Dict[str, Course] = {}
        self.exams: Dict[str, Exam] = {}
        self.attendance: Dict[str, AttendanceLedger] = {}
        self.attendance_settings: Optional[AttendanceSettings] = None
        self.results: Dict[str, Result] = {}
        self.sessions: Dict[str, ExamSession] = {}

    async def save_user(self, user: UserProfile) -> UserProfile:
        self.users[user.user_id] = user.model_copy(deep=True)
        return user

    async def get_user(self, user_id: str) -> UserProfile:
        user = self.users.get(user_id)
        if user is None:
            raise NotFound("user not found")
        return user.model_copy(deep=True)

    async def get_users(self, user_ids: list[str]) -> dict[str, UserProfile]:
        return {uid: self.users[uid].model_copy(deep=True) for uid in user_ids if uid in self.users}

    async def save_course(self, course: Course) -> Course:
        self.courses[course.course_id] = course.model_copy(deep=True)
        return course

    async def get_course(self, course_id: str) -> Course:
        course = self.courses.get(course_id)
        if course is None:
            raise NotFound("course not found")
        return course.model_copy(deep=True)

    async def list_courses(self) -> list[Course]:
        return [c.model_copy(deep=True) for c in self.courses.values()]

    async def save_exam(self, exam: Exam) -> Exam:
        self.exams[exam.exam_id] = exam.model_copy(deep=True)
        return exam

    async def get_exam(self, exam_id: str) -> Exam:
        exam = self.exams.get(exam_id)
        if exam is None:
            raise NotFound("exam not found")
        return exam.model_copy(deep=True)

    async def list_exams(self, course_id: Optional[str] = None) -> list[Exam]:
        return [
            e.model_copy(deep=True)
            for e in self.exams.values()
            if course_id is None or e.course_id == course_id
        ]

    async def delete_exam(self, exam_id: str) -> None:
        if self.exams.pop(exam_id, None) is None:
            raise NotFound("exam not found")

    async def get_attendance_ledger(self, course_id: str) -> AttendanceLedger:
        ledger = self.attendance.get(course_id, {})
        return {day: dict(records) for day, records in ledger.items()}

    async def mark_attendance(self, course_id: str, day: date, records: dict[str, AttendanceStatus]) -> None:
        ledger = self.attendance.setdefault(course_id, {})
        ledger.setdefault(day, {}).update(records)

    async def get_attendance_settings(self) -> AttendanceSettings:
        if self.attendance_settings is None:
            return AttendanceSettings()
        return self.attendance_settings.model_copy()

    async def save_attendance_settings(self, settings: AttendanceSettings) -> AttendanceSettings:
        self.attendance_settings = settings.model_copy()
        return settings

    async def insert_result(self, result: Result) -> Result:
        if result.result_id in self.results:
            raise Conflict("result already exists")
        self.results[result.result_id] = result.model_copy(deep=True)
        return result

    async def get_result(self, result_id: str) -> Result:
        result = self.results.get(result_id)
        if result is None:
            raise NotFound("result not found")
        return result.model_copy(deep=True)

    async def list_results(self, exam_id: Optional[str] = None, student_id: Optional[str] = None) -> list[Result]:
        return [
            r.model_copy(deep=True)
            for r in self.results.values()
            if (exam_id is None or r.exam_id == exam_id) and (student_id is None or r.student_id == student_id)
        ]

    async def save_result_marks(self, result_id: str, answers: dict[str, Answer], total_marks: int) -> Result:
        result = self.results.get(result_id)
        if result is None:
            raise NotFound("result not found")
        result.answers = {qid: a.model_copy() for qid, a in answers.items()}
        result.total_marks = total_marks
        return result.model_copy(deep=True)

    async def set_publish_state(self, exam_id: str, is_published: bool, publish_date: Optional[datetime]) -> int:
        updated = 0
        for result in self.results.values():
            if result.exam_id == exam_id:
                result.is_published = is_published
                result.publish_date = publish_date
                updated += 1
        return updated

    async def delete_result(self, result_id: str) -> None:
        if self.results.pop(result_id, None) is None:
            raise NotFound("result not found")

    async def create_session(self, session: ExamSession) -> ExamSession:
        self.sessions[session.session_id] = session.model_copy()
        return session

    async def get_session(self, session_id: str) -> ExamSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound("session not found")
        return session.model_copy()

    async def find_running_session(self, exam_id: str, student_id: str) -> Optional[ExamSession]:
        for session in self.sessions.values():
            if (
                session.exam_id == exam_id
                and session.student_id == student_id
                and session.status == SessionStatus.running
            ):
                return session.model_copy()
        return None

    async def complete_session(self, session_id: str, result_id: str, submitted_at: datetime) -> ExamSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound("session not found")
        if session.status != SessionStatus.running:
            raise Conflict("exam already submitted")
        session.status = SessionStatus.submitted
        session.result_id = result_id
        session.submitted_at = submitted_at
        return session.model_copy()
