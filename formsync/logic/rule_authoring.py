"""Authoring-time checks for form definitions.

The evaluator tolerates malformed rules; this module is where they are
rejected, before a form is stored.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence, Set
import logging

from formsync.logic.errors import ConfigurationError
from formsync.models.form import Question
from formsync.models.question_type import Combinator, Operator, QuestionType, map_field_type

logger = logging.getLogger(__name__)


def _rule_problems(question: Question, earlier_keys: Set[str]) -> List[str]:
    problems: List[str] = []
    rule = question.visibility_rule
    if rule is None:
        return problems
    if rule.combinator not in Combinator.ALL:
        problems.append(f"question '{question.key}': unknown combinator {rule.combinator!r}")
    for cond in rule.conditions:
        if cond.operator not in Operator.ALL:
            problems.append(f"question '{question.key}': unknown operator {cond.operator!r}")
        if cond.target_key not in earlier_keys:
            problems.append(
                f"question '{question.key}': condition target '{cond.target_key}' must be an earlier question"
            )
        if cond.operator == Operator.CONTAINS and isinstance(cond.value, list):
            problems.append(f"question '{question.key}': contains expects a single text value")
    return problems


def normalize_questions(questions: Sequence[Question]) -> List[Question]:
    """Return questions with record-store field types mapped to question types.

    Raises ConfigurationError listing every problem found.
    """
    problems: List[str] = []
    seen: Set[str] = set()
    out: List[Question] = []
    for question in questions:
        qtype = map_field_type(question.type)
        if not question.key:
            problems.append("question key must be non-empty")
        elif question.key in seen:
            problems.append(f"duplicate question key '{question.key}'")
        if qtype is None:
            problems.append(f"question '{question.key}': unsupported type {question.type!r}")
        elif question.options and qtype not in QuestionType.CHOICE:
            problems.append(f"question '{question.key}': options are only allowed on choice questions")
        problems.extend(_rule_problems(question, seen))
        seen.add(question.key)
        out.append(question.model_copy(update={"type": qtype or question.type}))
    if problems:
        logger.info("form_definition_rejected problems=%s", problems)
        raise ConfigurationError(problems)
    return out


def check_referenced_keys_kept(questions: Iterable[Question], referenced_keys: Iterable[str]) -> None:
    """Reject an edit that drops a question key stored responses still use."""
    kept = {q.key for q in questions}
    missing = sorted(set(referenced_keys) - kept)
    if missing:
        raise ConfigurationError(
            [f"question key '{k}' is referenced by stored responses and cannot be removed" for k in missing]
        )


__all__ = ["normalize_questions", "check_referenced_keys_kept"]
