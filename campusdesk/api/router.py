from fastapi import APIRouter

from campusdesk.api.attendance import router as attendance_router
from campusdesk.api.exams import router as exams_router
from campusdesk.api.results import router as results_router
from campusdesk.api.student import router as student_router

router = APIRouter()
router.include_router(student_router)
router.include_router(exams_router)
router.include_router(results_router)
router.include_router(attendance_router)
