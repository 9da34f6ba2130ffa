"""
Scoring engine.

Objective questions are marked at submission time. Subjective ones are stored
with zero marks, pending a grader.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from campusdesk.models import (
    Answer,
    AnswerStatus,
    LongAnswerQuestion,
    MultipleChoiceQuestion,
    Question,
    ShortAnswerQuestion,
)


def score_answer(question: Question, raw_answer: str) -> Answer:
    if isinstance(question, MultipleChoiceQuestion):
        # Exact, case-sensitive match against the stored option text.
        marks = question.marks if raw_answer == question.correct_answer else 0
        return Answer(answer=raw_answer, marks=marks, status=AnswerStatus.auto_graded)
    if isinstance(question, (ShortAnswerQuestion, LongAnswerQuestion)):
        return Answer(answer=raw_answer, marks=0, status=AnswerStatus.pending_evaluation)
    raise TypeError(f"unsupported question type: {type(question).__name__}")


def score(questions: Sequence[Question], raw_answers: Mapping[str, str]) -> tuple[dict[str, Answer], int]:
    """
    Score ``raw_answers`` (question_id -> text) against ``questions``.

    Every question gets an Answer; unanswered ones are scored as the empty
    string. Answers for unknown question ids are ignored.
    """
    answers: dict[str, Answer] = {}
    for question in questions:
        answers[question.question_id] = score_answer(question, raw_answers.get(question.question_id, ""))
    total = sum(a.marks for a in answers.values())
    return answers, total


def missing_answers(questions: Sequence[Question], raw_answers: Mapping[str, str]) -> list[str]:
    """Question ids with no answer or a blank one."""
    return [
        q.question_id
        for q in questions
        if not (raw_answers.get(q.question_id) or "").strip()
    ]
