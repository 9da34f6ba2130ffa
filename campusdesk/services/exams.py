"""
Exam Service for CampusDesk.
Handles eligibility, exam sessions and submissions for students.

Session time and "already submitted" are owned by the store, not the client:
a session records its start and deadline, and submission is a conditional
write, so a reload or a duplicate request cannot produce a second Result.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional

from campusdesk.core.attendance import attendance_summary
from campusdesk.core.eligibility import check_eligibility, open_exams_for
from campusdesk.core.scoring import missing_answers, score
from campusdesk.errors import EXAM_NOT_FOUND, Conflict, NotFound, PermissionDenied, ValidationError
from campusdesk.models import (
    AttendanceSummary,
    AvailableExamsResponse,
    EligibilityReport,
    Exam,
    ExamSession,
    ExamSummary,
    Result,
    SessionStatus,
    StartSessionResponse,
    UserProfile,
    utcnow,
)
from campusdesk.observability import get_tracer
from campusdesk.settings import settings
from campusdesk.storage.repo import CampusRepository

logger = logging.getLogger(__name__)


class ExamService:
    """Student-facing exam workflow."""

    def __init__(
        self,
        repo: CampusRepository,
        clock: Callable[[], datetime] = utcnow,
        grace_seconds: Optional[int] = None,
    ) -> None:
        self.repo = repo
        self.clock = clock
        self.grace = timedelta(
            seconds=settings.submission_grace_seconds if grace_seconds is None else grace_seconds
        )

    # ===== Attendance & eligibility =====

    async def eligibility(self, student: UserProfile) -> EligibilityReport:
        attendance_settings = await self.repo.get_attendance_settings()
        ledger = await self.repo.get_attendance_ledger(student.course_id) if student.course_id else {}
        return check_eligibility(student, ledger, attendance_settings, self.clock())

    async def attendance_summary(self, student: UserProfile) -> AttendanceSummary:
        attendance_settings = await self.repo.get_attendance_settings()
        ledger = await self.repo.get_attendance_ledger(student.course_id) if student.course_id else {}
        return attendance_summary(ledger, student.user_id, self.clock(), attendance_settings)

    async def available_exams(self, student: UserProfile) -> AvailableExamsResponse:
        """
        Exams the student may start right now.

        Ineligible students get an empty list and the eligibility message,
        whatever exams are active for their course.
        """
        report = await self.eligibility(student)
        if not report.eligible or not student.course_id:
            return AvailableExamsResponse(eligibility=report, exams=[])

        exams = await self.repo.list_exams(student.course_id)
        results = await self.repo.list_results(student_id=student.user_id)
        open_exams = open_exams_for(student, exams, results, self.clock())

        try:
            course_name: Optional[str] = (await self.repo.get_course(student.course_id)).name
        except NotFound:
            course_name = None

        return AvailableExamsResponse(
            eligibility=report,
            exams=[
                ExamSummary(
                    exam_id=e.exam_id,
                    name=e.name,
                    description=e.description,
                    course_id=e.course_id,
                    course_name=course_name,
                    end_time=e.end_time,
                    duration=e.duration,
                    multiple_attempts=e.multiple_attempts,
                )
                for e in open_exams
            ],
        )

    # ===== Exam access =====

    async def load_exam(self, exam_id: str, user: UserProfile) -> Exam:
        """Missing exams and foreign courses look the same to the caller."""
        try:
            exam = await self.repo.get_exam(exam_id)
        except NotFound:
            raise NotFound(EXAM_NOT_FOUND)
        if not user.can_access_course(exam.course_id):
            raise PermissionDenied()
        return exam

    # ===== Sessions =====

    async def start_session(self, exam_id: str, student: UserProfile) -> StartSessionResponse:
        """
        Start (or resume) the student's session for an exam.

        A running session is returned as-is so the countdown continues from
        its original start. A session left running past its deadline is
        closed with the answers the server has, which is none. Attendance
        only gates opening a new session, never finishing one.
        """
        exam = await self.load_exam(exam_id, student)

        now = self.clock()
        running = await self.repo.find_running_session(exam_id, student.user_id)
        if running is not None:
            if now <= running.deadline + self.grace:
                return StartSessionResponse(
                    session=running,
                    exam=exam.student_view(),
                    time_left_seconds=running.seconds_remaining(now),
                )
            logger.info(f"Closing expired session {running.session_id} for student {student.user_id}")
            await self._finalise(running, exam, student, {}, now)

        report = await self.eligibility(student)
        if not report.eligible:
            raise PermissionDenied()

        if not exam.is_active(now):
            raise ValidationError("Exam is not currently active")

        if not exam.multiple_attempts:
            previous = await self.repo.list_results(exam_id=exam_id, student_id=student.user_id)
            if previous:
                raise Conflict("You have already attempted this exam. Re-attempts are not allowed.")

        session = ExamSession(
            exam_id=exam_id,
            student_id=student.user_id,
            started_at=now,
            deadline=now + timedelta(minutes=exam.duration),
        )
        await self.repo.create_session(session)
        logger.info(f"Student {student.email} started exam: {exam_id} (session {session.session_id})")

        return StartSessionResponse(
            session=session,
            exam=exam.student_view(),
            time_left_seconds=session.seconds_remaining(now),
        )

    async def submit_session(
        self,
        session_id: str,
        student: UserProfile,
        raw_answers: Mapping[str, str],
        forced: bool = False,
    ) -> Result:
        """
        Score and persist one attempt.

        Manual submissions need an answer for every question; forced ones
        (the countdown reached zero) take whatever was entered.
        """
        tracer = get_tracer()
        with tracer.start_as_current_span("exam.submit") as span:
            span.set_attribute("session_id", session_id)
            span.set_attribute("forced", forced)

            try:
                session = await self.repo.get_session(session_id)
            except NotFound:
                raise NotFound("session not found")
            if session.student_id != student.user_id:
                raise NotFound("session not found")

            exam = await self.load_exam(session.exam_id, student)
            now = self.clock()

            if session.status == SessionStatus.submitted:
                raise Conflict("Exam already submitted")
            if now > session.deadline + self.grace:
                raise ValidationError("Exam session has expired")

            if not forced:
                missing = missing_answers(exam.questions, raw_answers)
                if missing:
                    raise ValidationError(
                        f"This question is required: {', '.join(missing)}", fields=missing
                    )

            result = await self._finalise(session, exam, student, raw_answers, now)
            span.set_attribute("total_marks", result.total_marks)
            return result

    def _result_id(self, exam: Exam, session: ExamSession) -> str:
        # One id per (exam, student) unless the exam allows more attempts.
        if exam.multiple_attempts:
            return f"{exam.exam_id}:{session.student_id}:{session.session_id}"
        return f"{exam.exam_id}:{session.student_id}"

    async def _finalise(
        self,
        session: ExamSession,
        exam: Exam,
        student: UserProfile,
        raw_answers: Mapping[str, str],
        now: datetime,
    ) -> Result:
        answers, total = score(exam.questions, raw_answers)
        result = Result(
            result_id=self._result_id(exam, session),
            exam_id=exam.exam_id,
            student_id=student.user_id,
            course_id=student.course_id,
            session_id=session.session_id,
            answers=answers,
            total_marks=total,
            is_published=False,
            submitted_at=now,
        )

        try:
            await self.repo.insert_result(result)
        except Conflict:
            existing = await self.repo.get_result(result.result_id)
            if existing.session_id != session.session_id:
                raise Conflict("You have already attempted this exam. Re-attempts are not allowed.")
            # A previous try stored the result but failed to close the session.
            result = existing

        await self.repo.complete_session(session.session_id, result.result_id, now)
        logger.info(
            f"Student {student.user_id} submitted exam {exam.exam_id}: "
            f"{result.total_marks}/{exam.max_marks} auto-graded marks"
        )
        return result
