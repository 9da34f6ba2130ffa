from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from campusdesk.api.deps import get_result_service
from campusdesk.auth import require_admin, require_staff
from campusdesk.models import (
    GradeRequest,
    PublishRequest,
    PublishResponse,
    PublishStatus,
    Result,
    ResultView,
    UserProfile,
)
from campusdesk.services.results import ResultService

router = APIRouter(prefix="/results", tags=["results"])


@router.get("", response_model=list[ResultView])
async def list_results(
    exam_id: str,
    user: UserProfile = Depends(require_staff),
    service: ResultService = Depends(get_result_service),
) -> list[ResultView]:
    return await service.list_for_exam(exam_id, user)


@router.get("/publish-status", response_model=PublishStatus)
async def get_publish_status(
    exam_id: str,
    user: UserProfile = Depends(require_staff),
    service: ResultService = Depends(get_result_service),
) -> PublishStatus:
    return await service.publish_status(exam_id, user)


@router.post("/publish", response_model=PublishResponse)
async def publish_results(
    req: PublishRequest,
    user: UserProfile = Depends(require_admin),
    service: ResultService = Depends(get_result_service),
) -> PublishResponse:
    # No publish_date means publish now; a future date schedules visibility.
    return await service.publish(req.exam_id, user, req.is_published, req.publish_date)


@router.put("/{result_id}/marks", response_model=Result)
async def grade_result(
    result_id: str,
    req: GradeRequest,
    user: UserProfile = Depends(require_staff),
    service: ResultService = Depends(get_result_service),
) -> Result:
    return await service.grade(result_id, user, req.marks)


@router.delete("/{result_id}")
async def delete_result(
    result_id: str,
    user: UserProfile = Depends(require_admin),
    service: ResultService = Depends(get_result_service),
) -> dict[str, Any]:
    await service.delete(result_id, user)
    return {"result_id": result_id, "deleted": True}
