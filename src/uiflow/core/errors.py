"""
Error types for uiflow action dispatch and expression evaluation.

Action errors are carried as values inside ``ActionResult.error``; the
executor never lets them escape ``run``. The message stays unadorned so
``str(error)`` is safe to show to a user; the dispatch context is kept on
the instance for logs.
"""

from dataclasses import dataclass


@dataclass
class ErrorContext:
    """
    Where in a dispatch an error occurred.

    Attributes:
        action: Action name being dispatched
        component_id: Component the action acted on behalf of, if any
        depth: Nesting depth of the dispatch (0 for a top-level action)
    """

    action: str
    component_id: str | None = None
    depth: int = 0

    def format(self) -> str:
        """
        Format the context for log output.

        Returns:
            String like: "setState (component=card-1, depth=2)"
        """
        details = [f"depth={self.depth}"]
        if self.component_id:
            details.insert(0, f"component={self.component_id}")
        return f"{self.action} ({', '.join(details)})"


class UIFlowError(Exception):
    """Base exception for all uiflow errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(message)

    def describe(self) -> str:
        """Message prefixed with the dispatch context, for logs."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class ActionArgumentError(UIFlowError):
    """
    Raised when a handler receives arguments of the wrong shape.

    Examples:
    - Missing ``key`` for setState
    - ``url`` that is not a string for makeApiCall
    - ``condition`` that is not a valid conditional expression
    """

    pass


class MissingCapabilityError(UIFlowError):
    """
    Raised when a handler needs a host capability that was not injected.

    Examples:
    - login without a ``login`` callback on the global scope
    - setLocalStorage without a storage backend
    - a ``CONTENT.`` key when no content scope is active
    """

    pass


class UnknownActionError(UIFlowError):
    """Raised when no handler (and no dynamic fallback) matches an action name."""

    def __init__(self, name: str, context: ErrorContext | None = None):
        self.name = name
        super().__init__(f"Unknown action: {name}", context)


class ChainDepthError(UIFlowError):
    """Raised when nested then/chain dispatches exceed the configured depth."""

    def __init__(self, depth: int, limit: int, context: ErrorContext | None = None):
        self.depth = depth
        self.limit = limit
        super().__init__(
            f"Action nesting depth {depth} exceeds the limit of {limit}", context
        )


class ExpressionError(UIFlowError):
    """Base class for template expression errors."""

    pass


class ExpressionEvalError(ExpressionError):
    """Error during template expression evaluation."""

    pass
