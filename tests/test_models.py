from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from campusdesk.models import Exam, ExamSession, MultipleChoiceQuestion, ShortAnswerQuestion

from conftest import NOW, make_exam


def test_questions_keyed_by_id_become_a_list():
    exam = Exam.model_validate(
        {
            "name": "Quiz 1",
            "course_id": "bca",
            "start_time": NOW,
            "end_time": NOW + timedelta(hours=1),
            "duration": 10,
            "questions": {
                "qa": {"type": "short-answer", "text": "Define a list"},
                "qb": {"type": "multiple-choice", "text": "2+2", "options": ["3", "4"], "correct_answer": "4"},
            },
        }
    )

    assert [q.question_id for q in exam.questions] == ["qa", "qb"]
    assert isinstance(exam.questions[1], MultipleChoiceQuestion)
    assert exam.max_marks == 3


def test_question_defaults_follow_type():
    assert ShortAnswerQuestion(text="Why?").marks == 2
    assert make_exam().questions[2].marks == 5


def test_correct_answer_must_be_an_option():
    with pytest.raises(ValidationError):
        MultipleChoiceQuestion(text="Pick", options=["A", "B"], correct_answer="C")


def test_multiple_choice_needs_two_options():
    with pytest.raises(ValidationError):
        MultipleChoiceQuestion(text="Pick", options=["A"], correct_answer="A")


def test_unknown_question_type_is_rejected():
    with pytest.raises(ValidationError):
        make_exam(questions=[{"type": "essay", "text": "Write"}])


def test_exam_window_must_be_ordered():
    with pytest.raises(ValidationError):
        make_exam(start_time=NOW, end_time=NOW - timedelta(minutes=1))


def test_duplicate_question_ids_are_rejected():
    with pytest.raises(ValidationError):
        make_exam(questions=[ShortAnswerQuestion(question_id="q", text="a"), ShortAnswerQuestion(question_id="q", text="b")])


def test_naive_datetimes_are_utc():
    exam = make_exam(start_time=datetime(2025, 3, 20, 9, 0), end_time=datetime(2025, 3, 20, 12, 0))

    assert exam.start_time == NOW - timedelta(hours=1)
    assert exam.is_active(NOW)
    assert not exam.is_active(NOW + timedelta(hours=3))


def test_student_view_hides_correct_answers():
    view = make_exam().student_view()
    dumped = view.model_dump()

    assert "correct_answer" not in str(dumped)
    assert view.questions[0].options == ["A", "B", "C"]
    assert view.questions[1].options is None
    assert view.max_marks == 12


def test_seconds_remaining_rounds_up_and_floors_at_zero():
    session = ExamSession(exam_id="midterm", student_id="s1", started_at=NOW, deadline=NOW + timedelta(minutes=1))

    assert session.seconds_remaining(NOW) == 60
    assert session.seconds_remaining(NOW + timedelta(seconds=59.5)) == 1
    assert session.seconds_remaining(NOW + timedelta(minutes=5)) == 0
