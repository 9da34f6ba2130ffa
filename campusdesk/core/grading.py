"""Manual grading of submitted results."""

from __future__ import annotations

from typing import Mapping, Sequence

from campusdesk.errors import ValidationError
from campusdesk.models import AnswerStatus, MultipleChoiceQuestion, Question, Result


def clamp_marks(value: int, maximum: int) -> int:
    return max(0, min(int(value), maximum))


def apply_marks(result: Result, questions: Sequence[Question], marks: Mapping[str, int]) -> Result:
    """
    Return a copy of ``result`` with ``marks`` applied.

    Marks are clamped to ``[0, question.marks]`` and graded answers become
    ``evaluated``. Multiple-choice answers stay auto-graded and cannot be set
    here. The total is recomputed from every answer.
    """
    by_id = {q.question_id: q for q in questions}

    unknown = [qid for qid in marks if qid not in by_id or qid not in result.answers]
    if unknown:
        raise ValidationError(f"Unknown questions for this result: {', '.join(unknown)}", fields=unknown)

    objective = [qid for qid in marks if isinstance(by_id[qid], MultipleChoiceQuestion)]
    if objective:
        raise ValidationError(
            f"Multiple-choice answers are auto-graded: {', '.join(objective)}", fields=objective
        )

    updated = result.model_copy(deep=True)
    for qid, value in marks.items():
        answer = updated.answers[qid]
        answer.marks = clamp_marks(value, by_id[qid].marks)
        answer.status = AnswerStatus.evaluated
    updated.recompute_total()
    return updated
