"""Visibility rule evaluation.

Single implementation shared by the preview endpoint (what the respondent's
client renders) and by submission validation (what the server accepts). Pure:
no I/O, inputs are never mutated.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Mapping, Optional, Union
import logging

from formsync.models.form import Condition, Rule
from formsync.models.question_type import Combinator, Operator

logger = logging.getLogger(__name__)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _multiset(values) -> Counter:
    # Stringify so unhashable members (e.g. attachment dicts) still compare
    return Counter(repr(v) if isinstance(v, (dict, list)) else v for v in values)


def _equals(answer: Any, value: Any) -> bool:
    if _is_sequence(answer):
        if _is_sequence(value):
            return _multiset(answer) == _multiset(value)
        return value in answer
    if _is_sequence(value):
        return False
    return answer == value


def _contains(answer: Any, value: Any) -> bool:
    needles = [str(v).lower() for v in value] if _is_sequence(value) else [str(value).lower()]
    haystacks = [str(a).lower() for a in answer] if _is_sequence(answer) else [str(answer).lower()]
    return any(n in h for h in haystacks for n in needles)


def evaluate_condition(condition: Condition, answers: Optional[Mapping[str, Any]]) -> bool:
    """Return True if `condition` holds for `answers`.

    A missing or None answer satisfies only `notEquals`. A target key that
    names no question is indistinguishable from an unanswered one.
    """
    answer = (answers or {}).get(condition.target_key)
    operator = condition.operator

    if answer is None:
        return operator == Operator.NOT_EQUALS

    if operator == Operator.EQUALS:
        return _equals(answer, condition.value)
    if operator == Operator.NOT_EQUALS:
        return not _equals(answer, condition.value)
    if operator == Operator.CONTAINS:
        return _contains(answer, condition.value)

    logger.warning(
        "rule_evaluator.unknown_operator operator=%r target_key=%s; treating condition as met",
        operator,
        condition.target_key,
    )
    return True


def evaluate_rule(rule: Optional[Rule], answers: Optional[Mapping[str, Any]]) -> bool:
    """Return True if a question governed by `rule` is visible."""
    if rule is None or not rule.conditions:
        return True

    combinator = rule.combinator
    if combinator not in Combinator.ALL:
        logger.warning("rule_evaluator.unknown_combinator combinator=%r; defaulting to AND", combinator)
        combinator = Combinator.AND

    results = (evaluate_condition(c, answers) for c in rule.conditions)
    if combinator == Combinator.OR:
        return any(results)
    return all(results)


def evaluate(rule_or_condition: Union[Rule, Condition, None], answers: Optional[Mapping[str, Any]]) -> bool:
    if isinstance(rule_or_condition, Condition):
        return evaluate_condition(rule_or_condition, answers)
    return evaluate_rule(rule_or_condition, answers)


__all__ = ["evaluate", "evaluate_rule", "evaluate_condition"]
