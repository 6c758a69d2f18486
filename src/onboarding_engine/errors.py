"""Exception taxonomy for the onboarding SDK.

Every SDK failure derives from :class:`QuestionnaireError`, which is itself a
``ValueError``.  Callers that only care about "the flow is broken" can catch
``ValueError``; the server maps each subclass to an HTTP status code.

None of these errors are retried inside the SDK.  Missing or malformed
content is a content-authoring defect, so the caller is expected to surface
it and restart the flow from scratch.
"""


class QuestionnaireError(ValueError):
    """Base class for all onboarding SDK errors."""


class NotFoundError(QuestionnaireError):
    """A question, questionnaire, chain, or flow is absent."""


class InvalidAnswerError(QuestionnaireError):
    """The answer id is not an option of the current question."""


class EngineStateError(QuestionnaireError):
    """The engine was called in a state that does not allow the operation.

    Raised e.g. when ``answer()`` is called after the questionnaire already
    ended, or ``initialize()`` is called on an engine that is in use.
    """


class ChainError(QuestionnaireError):
    """The chain orchestrator was misused or ran past its last step."""


class ContentError(QuestionnaireError):
    """Content was found but cannot be traversed (e.g. a question with no answers)."""


class UnresolvableSuccessorError(QuestionnaireError):
    """Strict routing: an answer leads nowhere and assigns no result."""


class DuplicateFlowError(QuestionnaireError):
    """A flow with the same (user_id, session_id) already exists."""
