"""Transports between an exam session controller and the exam service."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

from campusdesk.errors import CampusError, Conflict, NotFound, PersistenceError, Unauthorized, ValidationError
from campusdesk.models import ExamView, StartSessionResponse, SubmitRequest, SubmitResponse, UserProfile
from campusdesk.services.exams import ExamService

logger = logging.getLogger(__name__)


class SessionBackend(Protocol):
    async def load_exam(self, exam_id: str) -> ExamView: ...

    async def start_session(self, exam_id: str) -> StartSessionResponse: ...

    async def submit(self, session_id: str, answers: dict[str, str], forced: bool) -> SubmitResponse: ...


class LocalSessionBackend:
    """Calls the exam service in-process on behalf of one student."""

    def __init__(self, service: ExamService, student: UserProfile) -> None:
        self.service = service
        self.student = student

    async def load_exam(self, exam_id: str) -> ExamView:
        exam = await self.service.load_exam(exam_id, self.student)
        return exam.student_view()

    async def start_session(self, exam_id: str) -> StartSessionResponse:
        return await self.service.start_session(exam_id, self.student)

    async def submit(self, session_id: str, answers: dict[str, str], forced: bool) -> SubmitResponse:
        result = await self.service.submit_session(session_id, self.student, answers, forced=forced)
        return SubmitResponse(
            result_id=result.result_id,
            session_id=session_id,
            total_marks=result.total_marks,
            submitted_at=result.submitted_at,
        )


_STATUS_ERRORS: dict[int, type[CampusError]] = {
    400: ValidationError,
    401: Unauthorized,
    404: NotFound,
    409: Conflict,
    422: ValidationError,
}


class HttpSessionBackend:
    """Talks to the student API over HTTP with a bearer token."""

    def __init__(
        self,
        base_url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        prefix: str = "/api/v1",
        timeout: float = 30.0,
    ) -> None:
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.prefix = prefix
        self.headers = {"Authorization": f"Bearer {token}"}

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        try:
            response = await self.client.request(method, f"{self.prefix}{path}", json=json, headers=self.headers)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {str(e)}")
            raise PersistenceError(f"Request failed: {str(e)}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text[:500] or None
            error_cls = _STATUS_ERRORS.get(response.status_code, PersistenceError)
            raise error_cls(detail if isinstance(detail, str) else None)

        return response.json()

    async def load_exam(self, exam_id: str) -> ExamView:
        return ExamView.model_validate(await self._request("GET", f"/student/exams/{exam_id}"))

    async def start_session(self, exam_id: str) -> StartSessionResponse:
        data = await self._request("POST", f"/student/exams/{exam_id}/sessions")
        return StartSessionResponse.model_validate(data)

    async def submit(self, session_id: str, answers: dict[str, str], forced: bool) -> SubmitResponse:
        body = SubmitRequest(answers=answers, forced=forced).model_dump()
        data = await self._request("POST", f"/student/sessions/{session_id}/submit", json=body)
        return SubmitResponse.model_validate(data)
