"""Agent session: the collaborators and event plumbing shared by all orchestrators."""

from collections.abc import Sequence
from enum import Enum
from typing import Any

from agentcore.domain.agent.events import AgentEvent, ErrorEvent, MessageEvent
from agentcore.domain.agent.observers import ObserverBus
from agentcore.domain.chat.history import ChatHistory
from agentcore.domain.chat.tool_executor import ToolExecutor
from agentcore.domain.chat.types import Message, MessageRequest
from agentcore.domain.tools.base import Tool
from agentcore.infrastructure.ai.provider import AIProvider
from agentcore.shared.exceptions import AgentError, ConfigurationError

DEFAULT_INSTRUCTIONS = "You are a helpful assistant."


class AgentSession:
    """Holds provider, instructions, tools, chat history and the observer bus.

    Orchestrators never mutate the tool registry; they work on snapshots taken
    at the start of an interaction.
    """

    def __init__(
        self,
        provider: AIProvider | None = None,
        instructions: str | None = None,
        chat_history: ChatHistory | None = None,
        max_tool_rounds: int | None = None,
        tool_concurrency: int = 1,
    ) -> None:
        self.provider = provider
        self.instructions = instructions
        self.chat_history = chat_history
        self.max_tool_rounds = max_tool_rounds
        self.observers = ObserverBus()
        self.tool_executor = ToolExecutor(self.observers, max_concurrency=tool_concurrency)
        self._tools: list[Tool] = []

    # ----- Collaborators -----

    def resolve_provider(self) -> AIProvider:
        if self.provider is None:
            raise ConfigurationError("No AI provider configured. Call with_provider() first.")
        return self.provider

    def resolve_history(self) -> ChatHistory:
        if self.chat_history is None:
            raise ConfigurationError(
                "No chat history configured. Call with_chat_history() first."
            )
        return self.chat_history

    def resolve_instructions(self) -> str:
        return self.instructions or DEFAULT_INSTRUCTIONS

    # ----- Tools -----

    def add_tool(self, tool: Tool) -> None:
        if any(existing.name == tool.name for existing in self._tools):
            raise ConfigurationError(
                f"Tool '{tool.name}' is already registered",
                details={"tool_name": tool.name},
            )
        self._tools.append(tool)

    def tool_snapshot(self) -> list[Tool]:
        return list(self._tools)

    # ----- History -----

    def fill_history(self, request: MessageRequest) -> None:
        for message in request.messages:
            self.append(message)

    def append(self, message: Message) -> None:
        history = self.resolve_history()
        self.notify(AgentEvent.MESSAGE_SAVING, MessageEvent(message=message))
        history.add_message(message)
        self.notify(AgentEvent.MESSAGE_SAVED, MessageEvent(message=message))

    def append_all(self, messages: Sequence[Message]) -> None:
        for message in messages:
            self.append(message)

    # ----- Events -----

    def notify(self, event_type: str | Enum, payload: Any = None) -> None:
        self.observers.notify(event_type, payload)

    def report_error(
        self, exc: BaseException, critical: bool, context: dict[str, Any] | None = None
    ) -> None:
        self.notify(
            AgentEvent.ERROR,
            ErrorEvent(
                exception=exc,
                critical=critical,
                message=str(exc),
                context=context or {},
            ),
        )


def wrap_error(exc: Exception, operation: str) -> AgentError:
    """Return ``exc`` if it already is an AgentError, else wrap it once."""
    if isinstance(exc, AgentError):
        return exc
    error = AgentError(
        f"Error in {operation}: {exc}",
        details={"operation": operation, "cause": type(exc).__name__},
    )
    error.__cause__ = exc
    return error
