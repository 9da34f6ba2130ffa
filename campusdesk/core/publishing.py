"""Publish gate for student-facing results."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from campusdesk.models import PublishStatus, Result, as_utc


def publish_fields(is_published: bool, publish_date: Optional[datetime]) -> dict:
    """
    Fields written to every result of an exam.

    Unpublishing always clears the date; publishing without a date means
    "now" and also clears any earlier schedule.
    """
    if not is_published:
        return {"is_published": False, "publish_date": None}
    return {"is_published": True, "publish_date": as_utc(publish_date) if publish_date else None}


def is_visible(result: Result, now: datetime) -> bool:
    if not result.is_published:
        return False
    return result.publish_date is None or result.publish_date <= as_utc(now)


def publish_status(exam_id: str, results: Sequence[Result]) -> PublishStatus:
    # Publishing is batch-wide, so the first result speaks for the exam.
    first = results[0] if results else None
    return PublishStatus(
        exam_id=exam_id,
        result_count=len(results),
        is_published=bool(first and first.is_published),
        publish_date=first.publish_date if first else None,
    )
