from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from campusdesk.api.deps import get_authoring_service
from campusdesk.auth import get_current_profile, require_admin, require_staff
from campusdesk.models import AttendanceSettings, AttendanceSummary, MarkAttendanceRequest, UserProfile
from campusdesk.services.authoring import AuthoringService

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("/settings", response_model=AttendanceSettings)
async def get_settings(
    _: UserProfile = Depends(get_current_profile),
    service: AuthoringService = Depends(get_authoring_service),
) -> AttendanceSettings:
    return await service.get_attendance_settings()


@router.put("/settings", response_model=AttendanceSettings)
async def update_settings(
    req: AttendanceSettings,
    user: UserProfile = Depends(require_admin),
    service: AuthoringService = Depends(get_authoring_service),
) -> AttendanceSettings:
    return await service.update_attendance_settings(req, user)


@router.post("/{course_id}")
async def mark_attendance(
    course_id: str,
    req: MarkAttendanceRequest,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> dict[str, Any]:
    marked = await service.mark_attendance(course_id, req.day, req.records, user)
    return {"course_id": course_id, "day": req.day.isoformat(), "marked": marked}


@router.get("/{course_id}/{student_id}/summary", response_model=AttendanceSummary)
async def student_summary(
    course_id: str,
    student_id: str,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> AttendanceSummary:
    return await service.student_attendance(course_id, student_id, user)
