"""Functional tests for question visibility over ordered forms."""

from __future__ import annotations

from formsync.logic.visibility import visible_keys, visible_questions
from formsync.models.form import Question

from conftest import role_questions


def _q(key: str, rule=None) -> Question:
    return Question(
        key=key,
        external_field_id=f"fld_{key}",
        external_field_name=key.upper(),
        label=key,
        type="shortText",
        visibility_rule=rule,
    )


def test_unconditional_questions_always_visible():
    questions = [_q("a"), _q("b"), _q("c")]
    assert visible_keys(questions, {}) == ["a", "b", "c"]


def test_dependent_question_follows_answer():
    questions = role_questions()
    assert visible_keys(questions, {"q1": "Designer"}) == ["q1"]
    assert visible_keys(questions, {"q1": "Engineer"}) == ["q1", "q2"]


def test_output_is_ordered_subsequence_of_input():
    rule_hidden = {"conditions": [{"targetKey": "a", "operator": "equals", "value": "no"}]}
    questions = [_q("a"), _q("b", rule_hidden), _q("c"), _q("d", rule_hidden), _q("e")]
    result = visible_questions(questions, {"a": "yes"})
    assert [q.key for q in result] == ["a", "c", "e"]
    positions = [questions.index(q) for q in result]
    assert positions == sorted(positions)


def test_rule_sees_answers_of_hidden_questions():
    # c depends on b even though b itself is hidden
    questions = [
        _q("a"),
        _q("b", {"conditions": [{"targetKey": "a", "operator": "equals", "value": "show"}]}),
        _q("c", {"conditions": [{"targetKey": "b", "operator": "equals", "value": "yes"}]}),
    ]
    assert visible_keys(questions, {"a": "hide", "b": "yes"}) == ["a", "c"]


def test_rule_on_unknown_key_treats_answer_as_absent():
    questions = [
        _q("a", {"conditions": [{"targetKey": "ghost", "operator": "notEquals", "value": "x"}]}),
        _q("b", {"conditions": [{"targetKey": "ghost", "operator": "equals", "value": "x"}]}),
    ]
    assert visible_keys(questions, {"a": "1"}) == ["a"]
