"""
Student Routes for CampusDesk.
Eligibility, exam sessions, submission and published results.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from campusdesk.api.deps import get_exam_service, get_result_service
from campusdesk.auth import require_student
from campusdesk.models import (
    AttendanceSummary,
    AvailableExamsResponse,
    EligibilityReport,
    ExamView,
    StartSessionResponse,
    StudentResultView,
    SubmitRequest,
    SubmitResponse,
    UserProfile,
)
from campusdesk.services.exams import ExamService
from campusdesk.services.results import ResultService


router = APIRouter(prefix="/student", tags=["student"])


@router.get("/exams", response_model=AvailableExamsResponse)
async def available_exams(
    student: UserProfile = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> AvailableExamsResponse:
    """Active exams for the student's course, empty when attendance is too low."""
    return await service.available_exams(student)


@router.get("/eligibility", response_model=EligibilityReport)
async def eligibility(
    student: UserProfile = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> EligibilityReport:
    return await service.eligibility(student)


@router.get("/attendance", response_model=AttendanceSummary)
async def attendance(
    student: UserProfile = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> AttendanceSummary:
    return await service.attendance_summary(student)


@router.get("/exams/{exam_id}", response_model=ExamView)
async def get_exam(
    exam_id: str,
    student: UserProfile = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> ExamView:
    exam = await service.load_exam(exam_id, student)
    return exam.student_view()


@router.post("/exams/{exam_id}/sessions", response_model=StartSessionResponse)
async def start_session(
    exam_id: str,
    student: UserProfile = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> StartSessionResponse:
    return await service.start_session(exam_id, student)


@router.post("/sessions/{session_id}/submit", response_model=SubmitResponse)
async def submit_session(
    session_id: str,
    req: SubmitRequest,
    student: UserProfile = Depends(require_student),
    service: ExamService = Depends(get_exam_service),
) -> SubmitResponse:
    result = await service.submit_session(session_id, student, req.answers, forced=req.forced)
    return SubmitResponse(
        result_id=result.result_id,
        session_id=session_id,
        total_marks=result.total_marks,
        submitted_at=result.submitted_at,
    )


@router.get("/results", response_model=list[StudentResultView])
async def my_results(
    student: UserProfile = Depends(require_student),
    service: ResultService = Depends(get_result_service),
) -> list[StudentResultView]:
    return await service.student_results(student)
