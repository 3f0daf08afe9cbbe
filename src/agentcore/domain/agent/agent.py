"""Agent facade.

Example:
    agent = (
        Agent()
        .with_provider(OpenAIProvider(api_key="sk-..."))
        .with_chat_history(InMemoryChatHistory())
        .with_instructions("Answer briefly.")
        .add_tool(FunctionTool("get_weather", "Current weather", get_weather, WeatherInput))
    )
    reply = agent.chat("What's the weather in Vienna?")
"""

import asyncio
import weakref
from collections.abc import Coroutine, Iterable, Sequence
from enum import Enum
from typing import Any, TypeVar

from agentcore.config import Settings, get_settings
from agentcore.domain.agent.chat_orchestrator import ChatOrchestrator
from agentcore.domain.agent.events import AgentEvent, InstructionsChangedEvent, ToolAddedEvent
from agentcore.domain.agent.observers import ALL_EVENTS
from agentcore.domain.agent.session import AgentSession
from agentcore.domain.agent.stream_orchestrator import ChatStream, StreamOrchestrator
from agentcore.domain.agent.structured import StructuredExtractor
from agentcore.domain.chat.history import ChatHistory, FileChatHistory, InMemoryChatHistory
from agentcore.domain.chat.types import Message, MessageRequest
from agentcore.domain.tools.base import Tool
from agentcore.infrastructure.ai.provider import AIProvider
from agentcore.shared.event_loop import BackgroundLoop
from agentcore.shared.exceptions import AgentError

T = TypeVar("T")

RequestLike = MessageRequest | Message | str | Sequence[Message]


def _run_sync(loop: BackgroundLoop, coro: Coroutine[Any, Any, T], operation: str) -> T:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return loop.run(coro)
    coro.close()
    raise AgentError(
        f"{operation}() cannot block inside a running event loop; use {operation}_async()",
        details={"operation": operation},
    )


class Agent:
    """Conversational agent with tools, history, observers and structured output.

    Configuration methods return the agent so they can be chained.
    """

    def __init__(
        self,
        provider: AIProvider | None = None,
        instructions: str | None = None,
        chat_history: ChatHistory | None = None,
        tools: Iterable[Tool] = (),
        max_tool_rounds: int | None = None,
        tool_concurrency: int = 1,
        structured_max_retries: int = 1,
    ) -> None:
        self.session = AgentSession(
            provider=provider,
            instructions=instructions,
            chat_history=chat_history,
            max_tool_rounds=max_tool_rounds,
            tool_concurrency=tool_concurrency,
        )
        self.structured_max_retries = structured_max_retries
        # Blocking calls share one loop so provider clients stay usable between them
        self._sync_loop = BackgroundLoop(name=f"agent-{id(self):x}")
        weakref.finalize(self, self._sync_loop.close)
        for tool in tools:
            self.add_tool(tool)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Agent":
        """Build an agent with the configured provider and chat history."""
        from agentcore.infrastructure.ai.factory import create_provider

        settings = settings or get_settings()
        history: ChatHistory
        if settings.chat_history_path is not None:
            history = FileChatHistory(
                settings.chat_history_path,
                context_window=settings.chat_history_context_window,
            )
        else:
            history = InMemoryChatHistory(context_window=settings.chat_history_context_window)

        return cls(
            provider=create_provider(settings),
            instructions=settings.agent_instructions,
            chat_history=history,
            max_tool_rounds=settings.agent_max_tool_rounds,
            tool_concurrency=settings.agent_tool_concurrency,
            structured_max_retries=settings.agent_structured_max_retries,
        )

    # ----- Configuration -----

    def with_provider(self, provider: AIProvider) -> "Agent":
        self.session.provider = provider
        return self

    def with_instructions(self, instructions: str | None) -> "Agent":
        old_instructions = self.session.instructions
        self.session.instructions = instructions
        self.session.notify(
            AgentEvent.INSTRUCTIONS_CHANGED,
            InstructionsChangedEvent(
                old_instructions=old_instructions,
                new_instructions=instructions,
            ),
        )
        return self

    def with_chat_history(self, chat_history: ChatHistory) -> "Agent":
        self.session.chat_history = chat_history
        return self

    def add_tool(self, tool: Tool) -> "Agent":
        """Register a tool.

        Raises:
            ConfigurationError: If a tool with the same name is already registered.
        """
        self.session.add_tool(tool)
        self.session.notify(AgentEvent.TOOL_ADDED, ToolAddedEvent(tool_name=tool.name))
        return self

    @property
    def tools(self) -> list[Tool]:
        return self.session.tool_snapshot()

    def resolve_provider(self) -> AIProvider:
        return self.session.resolve_provider()

    def resolve_chat_history(self) -> ChatHistory:
        return self.session.resolve_history()

    def resolve_instructions(self) -> str:
        return self.session.resolve_instructions()

    # ----- Observers -----

    def add_observer(self, observer: Any, event_filter: str | Enum = ALL_EVENTS) -> "Agent":
        """Register an observer. The agent only keeps a weak reference to it."""
        self.session.observers.add_observer(observer, event_filter)
        return self

    def remove_observer(self, observer: Any) -> "Agent":
        self.session.observers.remove_observer(observer)
        return self

    def remove_all_observers(self) -> "Agent":
        self.session.observers.remove_all_observers()
        return self

    # ----- Interactions -----

    def chat(self, request: RequestLike) -> Message:
        """Blocking chat; same result and events as ``chat_async``."""
        return _run_sync(self._sync_loop, self.chat_async(request), "chat")

    async def chat_async(self, request: RequestLike) -> Message:
        """Send messages and run tool rounds until the model gives a final answer.

        Raises:
            AgentError: On any failure; provider and history errors are the cause.
        """
        return await ChatOrchestrator(self.session).run(MessageRequest.coerce(request))

    def stream(self, request: RequestLike) -> ChatStream:
        """Start a streaming response. The returned stream must be consumed or closed."""
        return StreamOrchestrator(self.session).open(MessageRequest.coerce(request))

    async def structured_async(
        self,
        request: RequestLike,
        response_model: type[T],
        max_retries: int | None = None,
        schema: dict[str, Any] | None = None,
    ) -> T:
        """Get a response validated into ``response_model``.

        Raises:
            StructuredExtractionError: If max_retries + 1 attempts all failed.
        """
        if max_retries is None:
            max_retries = self.structured_max_retries
        return await StructuredExtractor(self.session).run(
            MessageRequest.coerce(request),
            response_model,
            max_retries=max_retries,
            schema=schema,
        )

    def structured(
        self,
        request: RequestLike,
        response_model: type[T],
        max_retries: int | None = None,
        schema: dict[str, Any] | None = None,
    ) -> T:
        return _run_sync(
            self._sync_loop,
            self.structured_async(request, response_model, max_retries, schema),
            "structured",
        )

    def close(self) -> None:
        """Stop the event loop used by the blocking ``chat``/``structured`` calls."""
        self._sync_loop.close()
