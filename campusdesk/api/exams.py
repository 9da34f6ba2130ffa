from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends

from campusdesk.api.deps import get_authoring_service
from campusdesk.auth import require_staff
from campusdesk.models import Exam, ExamCreate, ExamUpdate, QuestionRequest, UserProfile
from campusdesk.services.authoring import AuthoringService

router = APIRouter(prefix="/exams", tags=["exams"])


@router.get("", response_model=list[Exam])
async def list_exams(
    course_id: Optional[str] = None,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> list[Exam]:
    return await service.list_exams(user, course_id)


@router.post("", response_model=Exam)
async def create_exam(
    req: ExamCreate,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> Exam:
    return await service.create_exam(req, user)


@router.get("/{exam_id}", response_model=Exam)
async def get_exam(
    exam_id: str,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> Exam:
    return await service.get_exam(exam_id, user)


@router.patch("/{exam_id}", response_model=Exam)
async def update_exam(
    exam_id: str,
    req: ExamUpdate,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> Exam:
    return await service.update_exam(exam_id, req, user)


@router.delete("/{exam_id}")
async def delete_exam(
    exam_id: str,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> dict[str, Any]:
    await service.delete_exam(exam_id, user)
    return {"exam_id": exam_id, "deleted": True}


@router.post("/{exam_id}/questions", response_model=Exam)
async def add_question(
    exam_id: str,
    req: QuestionRequest,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> Exam:
    return await service.add_question(exam_id, req.question, user)


@router.put("/{exam_id}/questions/{question_id}", response_model=Exam)
async def replace_question(
    exam_id: str,
    question_id: str,
    req: QuestionRequest,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> Exam:
    return await service.replace_question(exam_id, question_id, req.question, user)


@router.delete("/{exam_id}/questions/{question_id}", response_model=Exam)
async def delete_question(
    exam_id: str,
    question_id: str,
    user: UserProfile = Depends(require_staff),
    service: AuthoringService = Depends(get_authoring_service),
) -> Exam:
    return await service.delete_question(exam_id, question_id, user)
