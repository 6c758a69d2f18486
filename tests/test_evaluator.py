"""RouteEvaluator unit tests — every condition type and the first-match rule.

Condition reference (from evaluator.RouteEvaluator.matches):
    answer_equals     — stored answer id == value
    answer_includes   — value is a substring of the stored answer id
    answer_count_gte  — number of recorded answers >= value (question_id ignored)
"""

import pytest
from pydantic import TypeAdapter, ValidationError

from onboarding_engine.evaluator import RouteEvaluator
from onboarding_engine.models.routing import (
    AnswerCountGte,
    AnswerEquals,
    AnswerIncludes,
    ConditionalRoute,
    RouteCondition,
)


def _route(condition: dict, target: str) -> ConditionalRoute:
    """Build a route from a YAML-shaped condition dict."""
    return ConditionalRoute(condition=condition, target_question_id=target)


@pytest.fixture
def evaluator():
    """Fresh RouteEvaluator for each test."""
    return RouteEvaluator()


# =====================================================================
# Condition parsing
# =====================================================================


class TestConditionParsing:
    """The ``type`` field selects the condition class."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ({"type": "answer_equals", "question_id": "q1", "value": "a"}, AnswerEquals),
            ({"type": "answer_includes", "question_id": "q1", "value": "a"}, AnswerIncludes),
            ({"type": "answer_count_gte", "value": 3}, AnswerCountGte),
        ],
    )
    def test_discriminator_selects_class(self, raw, expected):
        condition = TypeAdapter(RouteCondition).validate_python(raw)
        assert isinstance(condition, expected), f"Expected {expected.__name__}"

    def test_unknown_type_rejected(self):
        """An unknown condition type is a validation error, not a silent miss."""
        with pytest.raises(ValidationError):
            _route({"type": "answer_regex", "question_id": "q1", "value": ".*"}, "q2")

    def test_count_condition_accepts_question_id(self):
        """question_id is allowed on answer_count_gte for content compatibility."""
        route = _route({"type": "answer_count_gte", "question_id": "q9", "value": 1}, "q2")
        assert route.condition.question_id == "q9"


# =====================================================================
# Individual conditions
# =====================================================================


class TestAnswerEquals:
    def test_matches_exact_answer(self, evaluator):
        cond = AnswerEquals(question_id="q1", value="q1_yes")
        assert evaluator.matches(cond, {"q1": "q1_yes"}) is True

    def test_rejects_different_answer(self, evaluator):
        cond = AnswerEquals(question_id="q1", value="q1_yes")
        assert evaluator.matches(cond, {"q1": "q1_yes_but"}) is False, (
            "answer_equals must not do substring matching"
        )

    def test_unanswered_question_never_matches(self, evaluator):
        cond = AnswerEquals(question_id="q1", value="q1_yes")
        assert evaluator.matches(cond, {"q2": "q1_yes"}) is False


class TestAnswerIncludes:
    def test_matches_substring(self, evaluator):
        cond = AnswerIncludes(question_id="q1", value="lots")
        assert evaluator.matches(cond, {"q1": "exp_lots"}) is True

    def test_rejects_missing_substring(self, evaluator):
        cond = AnswerIncludes(question_id="q1", value="lots")
        assert evaluator.matches(cond, {"q1": "exp_some"}) is False

    def test_unanswered_question_never_matches(self, evaluator):
        cond = AnswerIncludes(question_id="q1", value="")
        assert evaluator.matches(cond, {}) is False, (
            "Even an empty substring must not match an unanswered question"
        )


class TestAnswerCountGte:
    def test_counts_all_answers(self, evaluator):
        cond = AnswerCountGte(value=2)
        assert evaluator.matches(cond, {"q1": "a", "q2": "b"}) is True
        assert evaluator.matches(cond, {"q1": "a"}) is False

    def test_ignores_question_id(self, evaluator):
        """The referenced question need not be answered."""
        cond = AnswerCountGte(question_id="never_asked", value=1)
        assert evaluator.matches(cond, {"q1": "a"}) is True


# =====================================================================
# Route resolution
# =====================================================================


class TestResolve:
    """First matching route wins; None when nothing matches."""

    def test_first_match_wins(self, evaluator):
        routes = [
            _route({"type": "answer_equals", "question_id": "q1", "value": "x"}, "first"),
            _route({"type": "answer_count_gte", "value": 1}, "second"),
            _route({"type": "answer_count_gte", "value": 1}, "third"),
        ]
        assert evaluator.resolve(routes, {"q1": "y"}) == "second", (
            "Evaluation must stop at the first satisfied rule in list order"
        )

    def test_earlier_rule_shadows_later(self, evaluator):
        routes = [
            _route({"type": "answer_includes", "question_id": "q1", "value": "a"}, "broad"),
            _route({"type": "answer_equals", "question_id": "q1", "value": "a1"}, "narrow"),
        ]
        assert evaluator.resolve(routes, {"q1": "a1"}) == "broad"

    def test_no_match_returns_none(self, evaluator):
        routes = [_route({"type": "answer_count_gte", "value": 5}, "q9")]
        assert evaluator.resolve(routes, {"q1": "a"}) is None

    def test_empty_routes_returns_none(self, evaluator):
        assert evaluator.resolve([], {"q1": "a"}) is None
