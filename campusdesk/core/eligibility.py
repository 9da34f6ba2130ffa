"""Exam eligibility gate derived from monthly attendance."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

from campusdesk.core.attendance import monthly_percentage
from campusdesk.models import (
    AttendanceLedger,
    AttendanceSettings,
    EligibilityReport,
    Exam,
    Result,
    UserProfile,
)


def is_eligible(percentage: float, threshold: float) -> bool:
    return percentage >= threshold


def ineligible_message(threshold: float) -> str:
    return (
        f"Your attendance for this month is below the required {threshold:g}%. "
        "Please contact your administrator."
    )


def check_eligibility(
    student: UserProfile,
    ledger: Optional[AttendanceLedger],
    settings: AttendanceSettings,
    reference: date,
) -> EligibilityReport:
    """
    Fail-open: a student without a course, or whose course has no ledger at
    all, is eligible. Only recorded penalties can close the gate.
    """
    threshold = settings.exam_eligibility_threshold
    if not student.course_id or not ledger:
        return EligibilityReport(eligible=True, monthly_percentage=100.0, threshold=threshold)

    percentage = monthly_percentage(ledger, student.user_id, reference, settings)
    eligible = is_eligible(percentage, threshold)
    return EligibilityReport(
        eligible=eligible,
        monthly_percentage=percentage,
        threshold=threshold,
        message=None if eligible else ineligible_message(threshold),
    )


def open_exams_for(
    student: UserProfile,
    exams: Iterable[Exam],
    results: Iterable[Result],
    now: datetime,
) -> list[Exam]:
    """Active exams of the student's course not yet used up by a Result."""
    attempted = {r.exam_id for r in results if r.student_id == student.user_id}
    return [
        exam
        for exam in exams
        if exam.course_id == student.course_id
        and exam.is_active(now)
        and (exam.multiple_attempts or exam.exam_id not in attempted)
    ]
