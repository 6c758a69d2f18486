"""RouteEvaluator — resolves conditional routes against prior answers.

An answer may carry an ordered ``conditional_routes`` list.  The engine calls
:meth:`resolve` to find the first route whose condition holds; only when
none does is the answer's static ``next_question_id`` used.

Condition types:

  - **answer_equals**: stored answer id for ``question_id`` == ``value``
  - **answer_includes**: ``value`` is a substring of the stored answer id
  - **answer_count_gte**: number of recorded answers >= ``value``

Returns the winning ``target_question_id`` or ``None`` if no route matched.
"""

from __future__ import annotations

import logging
from typing import Sequence

from onboarding_engine.models.routing import (
    AnswerCountGte,
    AnswerEquals,
    AnswerIncludes,
    ConditionalRoute,
    RouteCondition,
)

logger = logging.getLogger(__name__)


class RouteEvaluator:
    """Evaluates conditional routes against a question-id → answer-id map."""

    def resolve(
        self,
        routes: Sequence[ConditionalRoute],
        answers: dict[str, str],
    ) -> str | None:
        """Evaluate routes in order; first match wins.

        Args:
            routes: the chosen answer's conditional routes, in authored order
            answers: every answer recorded so far, including the one just
                     recorded for the current question

        Returns:
            The first matching route's target question id, or None.
        """
        for route in routes:
            if self.matches(route.condition, answers):
                return route.target_question_id
        return None

    def matches(self, condition: RouteCondition, answers: dict[str, str]) -> bool:
        """Dispatch on the condition type.

        A condition that references an unanswered question never matches.
        """
        if isinstance(condition, AnswerCountGte):
            return len(answers) >= condition.value

        if isinstance(condition, AnswerEquals):
            previous = answers.get(condition.question_id)
            if previous is None:
                return False
            return previous == condition.value

        if isinstance(condition, AnswerIncludes):
            previous = answers.get(condition.question_id)
            if previous is None:
                return False
            return condition.value in previous

        logger.warning("Unknown route condition: %s", type(condition).__name__)
        return False
