"""Provider contract used by the orchestrators."""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from agentcore.domain.chat.types import Message
from agentcore.domain.tools.base import Tool
from agentcore.shared.event_loop import BackgroundLoop

T = TypeVar("T")


@runtime_checkable
class AIProvider(Protocol):
    """Protocol for model providers.

    ``chat_async`` returns either a text message or a message whose content is
    a ToolCallRequest. ``stream`` yields text chunks only.
    """

    name: str

    async def chat_async(
        self,
        messages: Sequence[Message],
        instructions: str,
        tools: Sequence[Tool],
    ) -> Message: ...

    def stream(
        self,
        messages: Sequence[Message],
        instructions: str,
        tools: Sequence[Tool],
    ) -> AsyncIterator[str]: ...

    async def structured(
        self,
        messages: Sequence[Message],
        instructions: str,
        response_model: type[T],
        schema: dict[str, Any],
    ) -> T: ...

    def chat(
        self,
        messages: Sequence[Message],
        instructions: str = "",
        tools: Sequence[Tool] = (),
    ) -> Message: ...


class SyncChatMixin:
    """Blocking ``chat`` on top of ``chat_async``.

    All blocking calls of one provider run on the same background loop, the
    one its SDK client binds to.
    """

    _sync_loop: BackgroundLoop | None = None

    def chat(
        self,
        messages: Sequence[Message],
        instructions: str = "",
        tools: Sequence[Tool] = (),
    ) -> Message:
        if self._sync_loop is None:
            self._sync_loop = BackgroundLoop(name=f"{type(self).__name__}-loop")
        coro = self.chat_async(messages, instructions, tools)  # type: ignore[attr-defined]
        return self._sync_loop.run(coro)
