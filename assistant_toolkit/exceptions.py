# assistant_toolkit/exceptions.py
from typing import Any, Optional


class AssistantToolkitError(Exception):
    """Base exception class for the assistant_toolkit library."""

    pass


class ConfigurationError(AssistantToolkitError):
    """Exception raised for configuration errors (e.g., missing API key, duplicate tool names)."""

    pass


class MissingAPIKeyError(ConfigurationError):
    """No API key was passed and none is set in the provider's environment variable."""

    pass


class ProviderError(AssistantToolkitError):
    """Exception raised for errors originating from an LLM provider.

    ``category`` is the :class:`~assistant_toolkit.errors.ErrorCategory`
    assigned by the error classifier; ``status_code`` is the HTTP status
    reported by the provider SDK, when there was one.
    """

    def __init__(
        self,
        message: str,
        *,
        category: Any = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.status_code = status_code


class ProviderTransportError(ProviderError):
    """Connection lost, timeout or unresolvable host."""

    pass


class ProviderAuthError(ProviderError):
    """The provider rejected the API key."""

    pass


class ProviderRateLimitError(ProviderError):
    """The provider throttled the request."""

    pass


class ProviderServerError(ProviderError):
    """The provider failed with a 5xx response."""

    pass


class ProviderUnknownError(ProviderError):
    """Any provider failure the classifier could not place."""

    pass


class ToolError(AssistantToolkitError):
    """Exception raised for errors during tool execution."""

    pass


class ToolArgumentError(ToolError):
    """Arguments for a tool call are missing, malformed or of the wrong type."""

    pass


class ToolExecutionError(ToolError):
    """A capability provider reported a failure (e.g., permission denied, record not found)."""

    pass


class RoutingError(ToolError):
    """No registered capability provider owns the requested tool name."""

    pass


class MaxIterationsExceededError(AssistantToolkitError):
    """The reasoning loop ran out of iterations without a plain-text answer."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            f"Max iterations ({max_iterations}) reached without a final answer."
        )
        self.max_iterations = max_iterations


class PendingActionsUnresolvedError(AssistantToolkitError):
    """A new message was sent while pending actions still await confirmation."""

    pass
