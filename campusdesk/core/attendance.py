"""
Attendance ledger reader.

Monthly attendance is never stored: it is recomputed from the course ledger
and the admin-configured penalties on every read.
"""

from __future__ import annotations

import calendar
from collections import Counter
from datetime import date, datetime
from typing import Optional

from campusdesk.models import (
    AttendanceLedger,
    AttendanceSettings,
    AttendanceStatus,
    AttendanceSummary,
    MonthBreakdown,
)


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def month_bounds(reference: date) -> tuple[date, date]:
    """First and last calendar day of the month containing ``reference``."""
    reference = _as_date(reference)
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    return reference.replace(day=1), reference.replace(day=last_day)


def count_statuses(
    ledger: AttendanceLedger,
    student_id: str,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Counter:
    counts: Counter = Counter()
    for day, records in ledger.items():
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        status = (records or {}).get(student_id)
        if status is not None:
            counts[AttendanceStatus(status)] += 1
    return counts


def monthly_percentage(
    ledger: AttendanceLedger,
    student_id: str,
    reference: date,
    settings: AttendanceSettings,
) -> float:
    """
    ``100 - absences * absent_penalty - half_days * half_day_penalty`` for the
    month of ``reference``, floored at 0.

    Present and unmarked days cost nothing, so a month with no marked days
    yields 100.
    """
    start, end = month_bounds(reference)
    counts = count_statuses(ledger, student_id, start, end)
    percentage = (
        100.0
        - counts[AttendanceStatus.absent] * settings.absent_penalty
        - counts[AttendanceStatus.half_day] * settings.half_day_penalty
    )
    return max(0.0, percentage)


def attendance_summary(
    ledger: AttendanceLedger,
    student_id: str,
    reference: date,
    settings: AttendanceSettings,
) -> AttendanceSummary:
    counts = count_statuses(ledger, student_id)
    total_days = sum(counts.values())
    present = counts[AttendanceStatus.present]
    half = counts[AttendanceStatus.half_day]

    months: dict[tuple[int, int], MonthBreakdown] = {}
    for day in sorted(ledger):
        status = (ledger[day] or {}).get(student_id)
        if status is None:
            continue
        key = (day.year, day.month)
        if key not in months:
            months[key] = MonthBreakdown(month=day.strftime("%b %Y"))
        bucket = months[key]
        status = AttendanceStatus(status)
        if status == AttendanceStatus.present:
            bucket.present += 1
        elif status == AttendanceStatus.absent:
            bucket.absent += 1
        else:
            bucket.half_day += 1

    return AttendanceSummary(
        student_id=student_id,
        total_days=total_days,
        days_present=present,
        days_absent=counts[AttendanceStatus.absent],
        days_half=half,
        total_percentage=((present + half * 0.5) / total_days * 100) if total_days else 0.0,
        monthly_percentage=monthly_percentage(ledger, student_id, reference, settings),
        months=[months[k] for k in sorted(months)],
    )
