"""
Pytest configuration and fixtures for agentcore tests.
"""
from collections.abc import AsyncIterator, Sequence
from typing import Any

import pytest
from pydantic import BaseModel

from agentcore.domain.chat.history import InMemoryChatHistory
from agentcore.domain.chat.types import (
    FunctionCall,
    Message,
    MessageRole,
    ToolCall,
    ToolCallRequest,
)
from agentcore.domain.tools.base import FunctionTool, Tool
from agentcore.infrastructure.ai.provider import SyncChatMixin


class ScriptedProvider(SyncChatMixin):
    """Provider returning pre-recorded responses in order.

    A scripted item that is an exception is raised instead of returned.
    """

    name = "scripted"

    def __init__(
        self,
        responses: Sequence[Message | Exception] = (),
        chunks: Sequence[str] = (),
        stream_error: Exception | None = None,
    ) -> None:
        self.responses = list(responses)
        self.chunks = list(chunks)
        self.stream_error = stream_error
        self.calls: list[dict[str, Any]] = []
        self.stream_closed = False

    async def chat_async(
        self,
        messages: Sequence[Message],
        instructions: str,
        tools: Sequence[Tool],
    ) -> Message:
        self.calls.append(
            {
                "messages": list(messages),
                "instructions": instructions,
                "tools": [tool.name for tool in tools],
            }
        )
        if not self.responses:
            raise AssertionError("ScriptedProvider ran out of responses")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def stream(
        self,
        messages: Sequence[Message],
        instructions: str,
        tools: Sequence[Tool],
    ) -> AsyncIterator[str]:
        self.calls.append({"messages": list(messages), "instructions": instructions})
        try:
            for chunk in self.chunks:
                yield chunk
            if self.stream_error is not None:
                raise self.stream_error
        finally:
            self.stream_closed = True

    async def structured(
        self,
        messages: Sequence[Message],
        instructions: str,
        response_model: type[Any],
        schema: dict[str, Any],
    ) -> Any:
        raise NotImplementedError


class RecordingObserver:
    """Collects every event it receives."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def update(self, event_type: str, payload: Any) -> None:
        self.events.append((event_type, payload))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, event_type: str) -> list[Any]:
        return [payload for name, payload in self.events if name == event_type]


class EchoInput(BaseModel):
    text: str


def tool_request(*calls: tuple[str, str, str], request_id: str = "req_1") -> Message:
    """Assistant message requesting tools; each call is (id, name, arguments)."""
    return Message(
        role=MessageRole.ASSISTANT,
        content=ToolCallRequest(
            id=request_id,
            calls=[
                ToolCall(id=call_id, function=FunctionCall(name=name, arguments=arguments))
                for call_id, name, arguments in calls
            ],
        ),
    )


@pytest.fixture
def scripted_provider() -> type[ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def history() -> InMemoryChatHistory:
    return InMemoryChatHistory()


@pytest.fixture
def make_tool_request():
    return tool_request


@pytest.fixture
def echo_tool() -> FunctionTool:
    async def echo(params: EchoInput) -> str:
        return params.text

    return FunctionTool("echo", "Echo the given text", echo, EchoInput)
