"""
Error taxonomy for CampusDesk.

Every error is an ``HTTPException`` so repositories and services can raise it
directly and FastAPI renders it without extra handlers.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status

EXAM_NOT_FOUND = "exam not found or no permission"


class CampusError(HTTPException):
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "internal error"

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(status_code=self.default_status, detail=detail or self.default_detail)


class NotFound(CampusError):
    default_status = status.HTTP_404_NOT_FOUND
    default_detail = "not found"


class PermissionDenied(NotFound):
    """Role or course mismatch. Rendered exactly like NotFound."""

    default_detail = EXAM_NOT_FOUND


class ValidationError(CampusError):
    default_status = status.HTTP_400_BAD_REQUEST
    default_detail = "invalid request"

    def __init__(self, detail: Optional[str] = None, fields: Optional[list[str]] = None) -> None:
        super().__init__(detail)
        self.fields = list(fields or [])


class Conflict(CampusError):
    default_status = status.HTTP_409_CONFLICT
    default_detail = "conflict"


class PersistenceError(CampusError):
    """A store write or read failed. Safe to retry."""

    default_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Database unavailable"


class Unauthorized(CampusError):
    """Missing, invalid or expired credentials. Retrying will not help."""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_detail = "Invalid or expired token"

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(detail)
        self.headers = {"WWW-Authenticate": "Bearer"}
