"""Conversation error taxonomy.

Engine operations report these errors inside their result objects instead of
raising them, so the Conversation Manager and any host can always render a
user-facing message. The only error that is raised is GraphDefinitionError,
at engine construction time, because an inconsistent question graph cannot
be recovered from by re-prompting.

Codes:
    VALIDATION_ERROR: An answer failed a validation rule. Re-prompt.
    NO_ACTIVE_QUESTION: Nothing left to answer. The host should reset.
    CANNOT_SKIP_REQUIRED: Skip requested on a required question. Re-prompt.
    NAVIGATION_BOUNDARY: Back requested at the first question. Informational.
    GRAPH_DEFINITION: The static question graph is inconsistent. Fatal.
"""


class ConversationError(Exception):
    """Base class for conversation errors.

    Attributes:
        code: Machine-readable error code (e.g., "VALIDATION_ERROR").
        message: Human-readable message safe to show to the user.
        recoverable: Whether the conversation can continue as-is.
    """

    recoverable: bool = True

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class AnswerValidationError(ConversationError):
    """An answer failed one of the current question's validation rules.

    Attributes:
        question_id: ID of the question whose rule failed.
        rule: Name of the failing rule kind (e.g., "email", "min_length").
    """

    def __init__(self, message: str, *, question_id: str, rule: str) -> None:
        super().__init__(code="VALIDATION_ERROR", message=message)
        self.question_id = question_id
        self.rule = rule


class NoActiveQuestionError(ConversationError):
    """An answer or skip arrived when no question is active."""

    recoverable = False

    def __init__(self, message: str = "No active question to answer") -> None:
        super().__init__(code="NO_ACTIVE_QUESTION", message=message)


class CannotSkipRequiredError(ConversationError):
    """Skip was requested on a required question."""

    def __init__(self, question_id: str) -> None:
        super().__init__(
            code="CANNOT_SKIP_REQUIRED",
            message="This question is required and cannot be skipped",
        )
        self.question_id = question_id


class NavigationBoundaryError(ConversationError):
    """Back-navigation was requested at the first question."""

    def __init__(self, message: str = "Cannot go back further") -> None:
        super().__init__(code="NAVIGATION_BOUNDARY", message=message)


class GraphDefinitionError(ConversationError):
    """The static question graph is inconsistent.

    Raised (never returned) while constructing an engine.
    """

    recoverable = False

    def __init__(self, message: str, *, question_id: str | None = None) -> None:
        if question_id:
            message = f"Question '{question_id}': {message}"
        super().__init__(code="GRAPH_DEFINITION", message=message)
        self.question_id = question_id
