from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional

from campusdesk.models import (
    AttendanceLedger,
    AttendanceSettings,
    AttendanceStatus,
    Answer,
    Course,
    Exam,
    ExamSession,
    Result,
    UserProfile,
)


class CampusRepository(ABC):
    async def initialize(self) -> None:
        """Prepare the backing store (indexes etc). No-op by default."""

    async def close(self) -> None:
        """Release store connections. No-op by default."""

    # ----- directory -----
    @abstractmethod
    async def save_user(self, user: UserProfile) -> UserProfile:
        raise NotImplementedError

    @abstractmethod
    async def get_user(self, user_id: str) -> UserProfile:
        raise NotImplementedError

    @abstractmethod
    async def get_users(self, user_ids: list[str]) -> dict[str, UserProfile]:
        raise NotImplementedError

    @abstractmethod
    async def save_course(self, course: Course) -> Course:
        raise NotImplementedError

    @abstractmethod
    async def get_course(self, course_id: str) -> Course:
        raise NotImplementedError

    @abstractmethod
    async def list_courses(self) -> list[Course]:
        raise NotImplementedError

    # ----- exams -----
    @abstractmethod
    async def save_exam(self, exam: Exam) -> Exam:
        raise NotImplementedError

    @abstractmethod
    async def get_exam(self, exam_id: str) -> Exam:
        raise NotImplementedError

    @abstractmethod
    async def list_exams(self, course_id: Optional[str] = None) -> list[Exam]:
        raise NotImplementedError

    @abstractmethod
    async def delete_exam(self, exam_id: str) -> None:
        raise NotImplementedError

    # ----- attendance -----
    @abstractmethod
    async def get_attendance_ledger(self, course_id: str) -> AttendanceLedger:
        raise NotImplementedError

    @abstractmethod
    async def mark_attendance(self, course_id: str, day: date, records: dict[str, AttendanceStatus]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_attendance_settings(self) -> AttendanceSettings:
        raise NotImplementedError

    @abstractmethod
    async def save_attendance_settings(self, settings: AttendanceSettings) -> AttendanceSettings:
        raise NotImplementedError

    # ----- results -----
    @abstractmethod
    async def insert_result(self, result: Result) -> Result:
        """Insert-if-absent keyed on ``result_id``; Conflict when it exists."""
        raise NotImplementedError

    @abstractmethod
    async def get_result(self, result_id: str) -> Result:
        raise NotImplementedError

    @abstractmethod
    async def list_results(self, exam_id: Optional[str] = None, student_id: Optional[str] = None) -> list[Result]:
        raise NotImplementedError

    @abstractmethod
    async def save_result_marks(self, result_id: str, answers: dict[str, Answer], total_marks: int) -> Result:
        raise NotImplementedError

    @abstractmethod
    async def set_publish_state(self, exam_id: str, is_published: bool, publish_date: Optional[datetime]) -> int:
        raise NotImplementedError

    @abstractmethod
    async def delete_result(self, result_id: str) -> None:
        raise NotImplementedError

    # ----- exam sessions -----
    @abstractmethod
    async def create_session(self, session: ExamSession) -> ExamSession:
        raise NotImplementedError

    @abstractmethod
    async def get_session(self, session_id: str) -> ExamSession:
        raise NotImplementedError

    @abstractmethod
    async def find_running_session(self, exam_id: str, student_id: str) -> Optional[ExamSession]:
        raise NotImplementedError

    @abstractmethod
    async def complete_session(self, session_id: str, result_id: str, submitted_at: datetime) -> ExamSession:
        """Conditional running -> submitted transition; Conflict otherwise."""
        raise NotImplementedError
