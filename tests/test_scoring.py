import pytest

from campusdesk.core.scoring import missing_answers, score, score_answer
from campusdesk.models import AnswerStatus, MultipleChoiceQuestion, ShortAnswerQuestion

from conftest import make_exam


@pytest.fixture
def questions():
    return make_exam().questions


def test_multiple_choice_exact_match_earns_marks(questions):
    answer = score_answer(questions[0], "B")

    assert answer.marks == 5
    assert answer.status == AnswerStatus.auto_graded


def test_multiple_choice_match_is_case_sensitive():
    question = MultipleChoiceQuestion(text="Pick", options=["yes", "Yes"], correct_answer="Yes", marks=3)

    assert score_answer(question, "yes").marks == 0
    assert score_answer(question, "Yes ").marks == 0
    assert score_answer(question, "Yes").marks == 3


def test_subjective_answers_wait_for_a_grader():
    answer = score_answer(ShortAnswerQuestion(text="Define"), "an immutable sequence")

    assert answer.marks == 0
    assert answer.status == AnswerStatus.pending_evaluation
    assert answer.answer == "an immutable sequence"


def test_score_covers_every_question(questions):
    answers, total = score(questions, {"q1": "B", "q3": "it frees memory", "q9": "ignored"})

    assert set(answers) == {"q1", "q2", "q3"}
    assert answers["q2"].answer == ""
    assert answers["q2"].status == AnswerStatus.pending_evaluation
    assert total == 5


def test_wrong_choice_scores_zero(questions):
    _, total = score(questions, {"q1": "A", "q2": "x", "q3": "y"})

    assert total == 0


def test_scoring_is_deterministic(questions):
    raw = {"q1": "B", "q2": "x", "q3": "y"}

    assert score(questions, raw) == score(questions, raw)


def test_missing_answers_treats_blank_as_missing(questions):
    assert missing_answers(questions, {"q1": "B", "q2": "   "}) == ["q2", "q3"]
    assert missing_answers(questions, {"q1": "B", "q2": "a", "q3": "b"}) == []
