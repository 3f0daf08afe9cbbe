"""Custom exception hierarchy for agentcore."""

from typing import Any


class AgentCoreError(Exception):
    """Base exception for all agentcore errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ----- Orchestration Errors -----


class AgentError(AgentCoreError):
    """An agent interaction (chat, stream or structured call) failed.

    Wraps the root cause, which is available as ``__cause__``.
    """

    pass


class ConfigurationError(AgentError):
    """Agent is missing a collaborator or was configured inconsistently."""

    pass


class ToolRoundLimitError(AgentError):
    """Model kept requesting tools beyond the configured round limit."""

    def __init__(self, max_rounds: int) -> None:
        super().__init__(
            message=f"Model requested more than {max_rounds} tool call rounds",
            details={"max_rounds": max_rounds},
        )


class StructuredExtractionError(AgentError):
    """Model output could not be turned into the requested structure."""

    def __init__(self, attempts: int, last_error: str) -> None:
        super().__init__(
            message=(
                f"Failed to get valid structured output after {attempts} attempts. "
                f"Last error: {last_error}"
            ),
            details={"attempts": attempts, "last_error": last_error},
        )


# ----- Provider Errors -----


class ProviderError(AgentCoreError):
    """Model provider call failed."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if provider:
            details["provider"] = provider
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message=message, details=details)
        self.provider = provider
        self.status_code = status_code


class ProviderRateLimitError(ProviderError):
    """Model provider rate limit exceeded."""

    pass


# ----- Tool Errors -----


class ToolResolutionError(AgentCoreError):
    """Requested tool is not registered."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(
            message=f"Error: Tool '{tool_name}' not found or not executable.",
            details={"tool_name": tool_name},
        )
        self.tool_name = tool_name


class ToolExecutionError(AgentCoreError):
    """Tool raised while executing."""

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(
            message=f"Error executing tool '{tool_name}': {reason}",
            details={"tool_name": tool_name, "reason": reason},
        )
        self.tool_name = tool_name


# ----- Observer / History Errors -----


class ObserverError(AgentCoreError):
    """Observer raised while handling an event."""

    def __init__(self, observer: Any, event_type: str, reason: str) -> None:
        super().__init__(
            message=f"Observer {observer!r} failed on '{event_type}': {reason}",
            details={"event_type": event_type, "reason": reason},
        )


class ChatHistoryError(AgentCoreError):
    """Chat history could not be read or persisted."""

    pass
