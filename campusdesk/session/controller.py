"""
Client-side driver for one exam attempt.

Tracks the countdown and the answers a student has entered, and makes sure
the attempt is submitted once: either by the student or by the timer when
it reaches zero. The server still owns the deadline; the countdown here is
what the student sees.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Optional

from campusdesk.errors import CampusError, Conflict, ValidationError
from campusdesk.models import ExamView, SubmitResponse
from campusdesk.session.backends import SessionBackend
from campusdesk.settings import settings

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    loading = "loading"
    ready = "ready"
    running = "running"
    submitting = "submitting"
    submitted = "submitted"
    error = "error"


def format_time_left(seconds: int) -> str:
    """Render a countdown as HH:MM:SS."""
    hours, rest = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class ExamSessionController:
    def __init__(
        self,
        backend: SessionBackend,
        exam_id: str,
        tick_seconds: Optional[float] = None,
    ) -> None:
        self.backend = backend
        self.exam_id = exam_id
        self.tick_seconds = settings.session_tick_seconds if tick_seconds is None else tick_seconds

        self.state = SessionState.loading
        self.exam: Optional[ExamView] = None
        self.session_id: Optional[str] = None
        self.time_left_seconds = 0
        self.answers: dict[str, str] = {}
        self.outcome: Optional[SubmitResponse] = None
        self.error: Optional[CampusError] = None
        self.timed_out = False

        self._lock = asyncio.Lock()
        self._timer: Optional[asyncio.Task] = None

    @property
    def time_left(self) -> str:
        return format_time_left(self.time_left_seconds)

    async def load(self) -> ExamView:
        if self.state is not SessionState.loading:
            raise Conflict("Exam already loaded")
        try:
            exam = await self.backend.load_exam(self.exam_id)
        except CampusError as e:
            self._fail(e)
            raise
        self.exam = exam
        self.time_left_seconds = exam.duration * 60
        self.state = SessionState.ready
        return exam

    async def start(self) -> None:
        """Open (or resume) the server session and start the countdown."""
        if self.state is not SessionState.ready:
            raise Conflict("Exam is not ready to start")
        try:
            started = await self.backend.start_session(self.exam_id)
        except CampusError as e:
            self._fail(e)
            raise

        self.session_id = started.session.session_id
        self.exam = started.exam
        self.time_left_seconds = started.time_left_seconds
        self.state = SessionState.running
        logger.info(f"Exam {self.exam_id} started, {self.time_left} left (session {self.session_id})")

        if self.time_left_seconds <= 0:
            await self._time_up()
        else:
            self._timer = asyncio.create_task(self._run_timer())

    def set_answer(self, question_id: str, value: str) -> None:
        if self.state not in (SessionState.running, SessionState.error) or self.session_id is None:
            raise ValidationError("Exam is not in progress")
        if self.timed_out:
            raise ValidationError("Time is up, answers can no longer be changed")
        if question_id not in {q.question_id for q in self.exam.questions}:
            raise ValidationError(f"Unknown question: {question_id}", fields=[question_id])
        self.answers[question_id] = value

    async def submit(self) -> SubmitResponse:
        """
        Submit the entered answers.

        Every question needs an answer unless the timer has already run out,
        in which case this is a retry of the forced submission.
        """
        return await self._submit(forced=self.timed_out)

    async def close(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await timer

    async def _submit(self, forced: bool) -> SubmitResponse:
        async with self._lock:
            if self.state is SessionState.submitted:
                raise Conflict("Exam already submitted")
            if self.state not in (SessionState.running, SessionState.error) or self.session_id is None:
                raise ValidationError("Exam is not in progress")

            if not forced:
                missing = [
                    q.question_id for q in self.exam.questions if not self.answers.get(q.question_id, "").strip()
                ]
                if missing:
                    raise ValidationError(f"This question is required: {', '.join(missing)}", fields=missing)

            self.state = SessionState.submitting
            try:
                outcome = await self.backend.submit(self.session_id, dict(self.answers), forced)
            except CampusError as e:
                # Answers stay in place so the student can retry.
                self._fail(e)
                raise

            self.outcome = outcome
            self.error = None
            self.state = SessionState.submitted

        self._stop_timer()
        logger.info(f"Session {self.session_id} submitted{' (time up)' if forced else ''}: {outcome.result_id}")
        return outcome

    async def _run_timer(self) -> None:
        while self.state is SessionState.running and self.time_left_seconds > 0:
            await asyncio.sleep(self.tick_seconds)
            if self.state is not SessionState.running:
                return
            self.time_left_seconds -= 1

        if self.state is SessionState.running:
            await self._time_up()

    async def _time_up(self) -> None:
        self.timed_out = True
        logger.info(f"Time is up for session {self.session_id}, submitting")
        try:
            await self._submit(forced=True)
        except CampusError as e:
            logger.warning(f"Forced submission of session {self.session_id} failed: {e.detail}")

    def _fail(self, error: CampusError) -> None:
        self.error = error
        self.state = SessionState.error
        self._stop_timer()

    def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()
