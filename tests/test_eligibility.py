from datetime import date, timedelta

from campusdesk.core.eligibility import check_eligibility, is_eligible, open_exams_for
from campusdesk.models import AttendanceSettings, AttendanceStatus, Result

from conftest import NOW, OUTSIDER, STUDENT, make_exam

REFERENCE = NOW.date()


def absences(n):
    return {date(2025, 3, d): {STUDENT.user_id: AttendanceStatus.absent} for d in range(1, n + 1)}


def test_threshold_is_inclusive():
    assert is_eligible(80.0, 80.0)
    assert not is_eligible(79.9, 80.0)


def test_student_without_course_is_eligible():
    student = STUDENT.model_copy(update={"course_id": None})

    report = check_eligibility(student, absences(10), AttendanceSettings(), REFERENCE)

    assert report.eligible
    assert report.monthly_percentage == 100.0


def test_course_without_ledger_is_eligible():
    report = check_eligibility(STUDENT, {}, AttendanceSettings(), REFERENCE)

    assert report.eligible
    assert report.message is None


def test_exactly_at_threshold():
    report = check_eligibility(STUDENT, absences(4), AttendanceSettings(), REFERENCE)

    assert report.monthly_percentage == 80.0
    assert report.eligible


def test_below_threshold_carries_message():
    report = check_eligibility(STUDENT, absences(5), AttendanceSettings(), REFERENCE)

    assert not report.eligible
    assert report.monthly_percentage == 75.0
    assert "below the required 80%" in report.message


def test_open_exams_skip_attempted_inactive_and_foreign():
    single = make_exam()
    multi = make_exam(exam_id="practice", multiple_attempts=True)
    upcoming = make_exam(exam_id="final", start_time=NOW + timedelta(days=3), end_time=NOW + timedelta(days=4))
    foreign = make_exam(exam_id="accounts", course_id="bcom")
    results = [
        Result(exam_id="midterm", student_id=STUDENT.user_id),
        Result(exam_id="practice", student_id=STUDENT.user_id),
        Result(exam_id="accounts", student_id=OUTSIDER.user_id),
    ]

    open_exams = open_exams_for(STUDENT, [single, multi, upcoming, foreign], results, NOW)

    assert [e.exam_id for e in open_exams] == ["practice"]
