"""
Result Service for CampusDesk.
Grading, publishing and result listings for staff and students.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Mapping, Optional

from campusdesk.core.grading import apply_marks
from campusdesk.core.publishing import is_visible, publish_fields, publish_status
from campusdesk.errors import EXAM_NOT_FOUND, NotFound, PermissionDenied
from campusdesk.models import (
    Exam,
    PublishResponse,
    PublishStatus,
    Result,
    ResultView,
    StudentResultView,
    UserProfile,
    utcnow,
)
from campusdesk.observability import get_tracer
from campusdesk.storage.repo import CampusRepository

logger = logging.getLogger(__name__)


class ResultService:
    def __init__(self, repo: CampusRepository, clock: Callable[[], datetime] = utcnow) -> None:
        self.repo = repo
        self.clock = clock

    async def _exam_for(self, exam_id: str, user: UserProfile) -> Exam:
        try:
            exam = await self.repo.get_exam(exam_id)
        except NotFound:
            raise NotFound(EXAM_NOT_FOUND)
        if not user.can_access_course(exam.course_id):
            raise PermissionDenied()
        return exam

    async def list_for_exam(self, exam_id: str, user: UserProfile) -> list[ResultView]:
        await self._exam_for(exam_id, user)
        results = await self.repo.list_results(exam_id=exam_id)
        users = await self.repo.get_users(sorted({r.student_id for r in results}))
        return [
            ResultView(
                **r.model_dump(),
                student_name=users[r.student_id].name if r.student_id in users else "Unknown Student",
            )
            for r in results
        ]

    async def grade(self, result_id: str, user: UserProfile, marks: Mapping[str, int]) -> Result:
        """
        Apply grader marks to one result and store the new total.

        Works whether or not the result is already published.
        """
        tracer = get_tracer()
        with tracer.start_as_current_span("result.grade") as span:
            span.set_attribute("result_id", result_id)
            result = await self.repo.get_result(result_id)
            exam = await self._exam_for(result.exam_id, user)

            graded = apply_marks(result, exam.questions, marks)
            saved = await self.repo.save_result_marks(result_id, graded.answers, graded.total_marks)

            span.set_attribute("total_marks", saved.total_marks)
            logger.info(f"{user.email} graded result {result_id}: total {saved.total_marks}")
            return saved

    async def publish(
        self,
        exam_id: str,
        user: UserProfile,
        is_published: bool,
        publish_date: Optional[datetime] = None,
    ) -> PublishResponse:
        """Publish, schedule or hide every result of an exam at once."""
        tracer = get_tracer()
        with tracer.start_as_current_span("result.publish") as span:
            span.set_attribute("exam_id", exam_id)
            await self._exam_for(exam_id, user)

            fields = publish_fields(is_published, publish_date)
            updated = await self.repo.set_publish_state(exam_id, fields["is_published"], fields["publish_date"])

            span.set_attribute("updated", updated)
            logger.info(
                f"Results of exam {exam_id} {'published' if is_published else 'unpublished'} "
                f"by {user.email} ({updated} results, publish_date={fields['publish_date']})"
            )
            return PublishResponse(
                exam_id=exam_id,
                is_published=fields["is_published"],
                publish_date=fields["publish_date"],
                updated=updated,
            )

    async def publish_status(self, exam_id: str, user: UserProfile) -> PublishStatus:
        await self._exam_for(exam_id, user)
        return publish_status(exam_id, await self.repo.list_results(exam_id=exam_id))

    async def delete(self, result_id: str, user: UserProfile) -> None:
        """Remove a result; for single-attempt exams this re-opens the exam."""
        result = await self.repo.get_result(result_id)
        if result.course_id and not user.can_access_course(result.course_id):
            raise NotFound("result not found")
        await self.repo.delete_result(result_id)
        logger.info(f"{user.email} deleted result {result_id} (exam {result.exam_id}, student {result.student_id})")

    async def student_results(self, student: UserProfile) -> list[StudentResultView]:
        """Results the student may see now: published and past any scheduled date."""
        now = self.clock()
        results = [r for r in await self.repo.list_results(student_id=student.user_id) if is_visible(r, now)]

        views = []
        for r in results:
            try:
                exam: Optional[Exam] = await self.repo.get_exam(r.exam_id)
            except NotFound:
                exam = None
            views.append(
                StudentResultView(
                    **r.model_dump(),
                    exam_name=exam.name if exam else None,
                    max_marks=exam.max_marks if exam else None,
                )
            )
        return views
