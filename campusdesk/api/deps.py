from __future__ import annotations

from datetime import datetime
from typing import Callable

from fastapi import Depends

from campusdesk.services.authoring import AuthoringService
from campusdesk.services.exams import ExamService
from campusdesk.services.results import ResultService
from campusdesk.storage.repo import CampusRepository
from campusdesk.wiring import get_clock, get_repo


def get_exam_service(
    repo: CampusRepository = Depends(get_repo),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ExamService:
    return ExamService(repo, clock)


def get_result_service(
    repo: CampusRepository = Depends(get_repo),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ResultService:
    return ResultService(repo, clock)


def get_authoring_service(
    repo: CampusRepository = Depends(get_repo),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> AuthoringService:
    return AuthoringService(repo, clock)
