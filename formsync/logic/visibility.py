"""Question visibility over an ordered question list."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from formsync.logic.rule_evaluator import evaluate_rule
from formsync.models.form import Question


def visible_questions(
    questions: Sequence[Question],
    answers: Optional[Mapping[str, Any]],
) -> List[Question]:
    """Return the visible subset of `questions`, preserving form order.

    Every rule is evaluated against the full answer map, including answers to
    questions that are themselves hidden.
    """
    return [q for q in questions if evaluate_rule(q.visibility_rule, answers)]


def visible_keys(questions: Sequence[Question], answers: Optional[Mapping[str, Any]]) -> List[str]:
    return [q.key for q in visible_questions(questions, answers)]


__all__ = ["visible_questions", "visible_keys"]
