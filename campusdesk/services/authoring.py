"""
Authoring Service for CampusDesk.
Exam and question management for staff, plus the attendance register.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from campusdesk.core.attendance import attendance_summary
from campusdesk.errors import EXAM_NOT_FOUND, Conflict, NotFound, PermissionDenied, ValidationError
from campusdesk.models import (
    AttendanceSettings,
    AttendanceStatus,
    AttendanceSummary,
    Exam,
    ExamCreate,
    ExamUpdate,
    Question,
    UserProfile,
    UserRole,
    utcnow,
)
from campusdesk.storage.repo import CampusRepository

logger = logging.getLogger(__name__)


def _build_exam(data: dict[str, Any]) -> Exam:
    try:
        return Exam.model_validate(data)
    except PydanticValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ValidationError(e.errors()[0]["msg"], fields=fields) from e


class AuthoringService:
    def __init__(self, repo: CampusRepository, clock: Callable[[], datetime] = utcnow) -> None:
        self.repo = repo
        self.clock = clock

    async def _check_course(self, course_id: str, user: UserProfile) -> None:
        if not user.can_access_course(course_id):
            raise PermissionDenied("course not found")
        await self.repo.get_course(course_id)

    async def _exam_for(self, exam_id: str, user: UserProfile) -> Exam:
        try:
            exam = await self.repo.get_exam(exam_id)
        except NotFound:
            raise NotFound(EXAM_NOT_FOUND)
        if not user.can_access_course(exam.course_id):
            raise PermissionDenied()
        return exam

    async def _editable_exam(self, exam_id: str, user: UserProfile) -> Exam:
        """Exams are frozen once any result references them."""
        exam = await self._exam_for(exam_id, user)
        if await self.repo.list_results(exam_id=exam_id):
            raise Conflict("Exam has results and can no longer be edited")
        return exam

    # ===== Exams =====

    async def list_exams(self, user: UserProfile, course_id: Optional[str] = None) -> list[Exam]:
        if course_id is not None:
            if not user.can_access_course(course_id):
                return []
            return await self.repo.list_exams(course_id)
        exams = await self.repo.list_exams()
        return [e for e in exams if user.can_access_course(e.course_id)]

    async def get_exam(self, exam_id: str, user: UserProfile) -> Exam:
        return await self._exam_for(exam_id, user)

    async def create_exam(self, req: ExamCreate, user: UserProfile) -> Exam:
        await self._check_course(req.course_id, user)
        exam = _build_exam(req.model_dump())
        await self.repo.save_exam(exam)
        logger.info(f"{user.email} created exam {exam.exam_id} ({exam.name}) for course {exam.course_id}")
        return exam

    async def update_exam(self, exam_id: str, req: ExamUpdate, user: UserProfile) -> Exam:
        exam = await self._editable_exam(exam_id, user)
        updated = _build_exam({**exam.model_dump(), **req.model_dump(exclude_unset=True)})
        await self.repo.save_exam(updated)
        logger.info(f"{user.email} updated exam {exam_id}")
        return updated

    async def delete_exam(self, exam_id: str, user: UserProfile) -> None:
        """Results of a deleted exam are kept."""
        await self._exam_for(exam_id, user)
        await self.repo.delete_exam(exam_id)
        logger.info(f"{user.email} deleted exam {exam_id}")

    # ===== Questions =====

    async def add_question(self, exam_id: str, question: Question, user: UserProfile) -> Exam:
        exam = await self._editable_exam(exam_id, user)
        if question.question_id in exam.question_map():
            raise Conflict(f"Question {question.question_id} already exists")
        updated = _build_exam({**exam.model_dump(), "questions": [*exam.questions, question]})
        await self.repo.save_exam(updated)
        logger.info(f"{user.email} added {question.type} question {question.question_id} to exam {exam_id}")
        return updated

    async def replace_question(self, exam_id: str, question_id: str, question: Question, user: UserProfile) -> Exam:
        exam = await self._editable_exam(exam_id, user)
        if question_id not in exam.question_map():
            raise NotFound("question not found")
        replacement = question.model_copy(update={"question_id": question_id})
        questions = [replacement if q.question_id == question_id else q for q in exam.questions]
        updated = _build_exam({**exam.model_dump(), "questions": questions})
        await self.repo.save_exam(updated)
        logger.info(f"{user.email} replaced question {question_id} of exam {exam_id}")
        return updated

    async def delete_question(self, exam_id: str, question_id: str, user: UserProfile) -> Exam:
        exam = await self._editable_exam(exam_id, user)
        if question_id not in exam.question_map():
            raise NotFound("question not found")
        updated = exam.model_copy(update={"questions": [q for q in exam.questions if q.question_id != question_id]})
        await self.repo.save_exam(updated)
        logger.info(f"{user.email} removed question {question_id} from exam {exam_id}")
        return updated

    # ===== Attendance =====

    async def mark_attendance(
        self,
        course_id: str,
        day: date,
        records: dict[str, AttendanceStatus],
        user: UserProfile,
    ) -> int:
        await self._check_course(course_id, user)
        students = await self.repo.get_users(list(records))
        unknown = sorted(
            sid for sid in records if sid not in students or students[sid].course_id != course_id
        )
        if unknown:
            raise ValidationError(f"Not students of course {course_id}: {', '.join(unknown)}", fields=unknown)

        await self.repo.mark_attendance(course_id, day, records)
        logger.info(f"{user.email} marked attendance for {len(records)} students of {course_id} on {day}")
        return len(records)

    async def student_attendance(self, course_id: str, student_id: str, user: UserProfile) -> AttendanceSummary:
        await self._check_course(course_id, user)
        attendance_settings = await self.repo.get_attendance_settings()
        ledger = await self.repo.get_attendance_ledger(course_id)
        return attendance_summary(ledger, student_id, self.clock(), attendance_settings)

    async def get_attendance_settings(self) -> AttendanceSettings:
        return await self.repo.get_attendance_settings()

    async def update_attendance_settings(self, new: AttendanceSettings, user: UserProfile) -> AttendanceSettings:
        if user.role != UserRole.ADMIN:
            raise PermissionDenied("not found")
        saved = await self.repo.save_attendance_settings(new)
        logger.info(
            f"{user.email} updated attendance settings: absent -{saved.absent_penalty}, "
            f"half-day -{saved.half_day_penalty}, threshold {saved.exam_eligibility_threshold}%"
        )
        return saved
