"""Streaming chat with exactly-once finalization.

A ChatStream forwards provider chunks unchanged and buffers them. Whether the
caller drains it, closes it early, abandons it mid-iteration or the provider
fails, the buffered text is saved as one assistant message and
inference-stop/stream-stop are emitted exactly once. Chunks are pulled through
an internal async generator, so an abandoned stream is finalized by the event
loop once that generator is garbage collected.
"""

import time
from collections.abc import AsyncGenerator, AsyncIterator
from types import TracebackType

from agentcore.domain.agent.events import (
    AgentEvent,
    InferenceStartEvent,
    InferenceStopEvent,
    StreamStartEvent,
    StreamStopEvent,
)
from agentcore.domain.agent.session import AgentSession, wrap_error
from agentcore.domain.chat.types import Message, MessageRequest
from agentcore.shared.logging import get_logger

logger = get_logger(__name__)


class ChatStream:
    """Finite, non-restartable async iterator over response chunks.

    Usage:
        async with agent.stream("Hi") as stream:
            async for chunk in stream:
                print(chunk, end="")
        stream.response  # the saved assistant message
    """

    def __init__(
        self,
        session: AgentSession,
        request: MessageRequest,
        upstream: AsyncIterator[str],
        start_time: float,
    ) -> None:
        self.session = session
        self.request = request
        self.response: Message | None = None
        self._upstream = upstream
        self._start_time = start_time
        self._chunks: list[str] = []
        self._finalized = False
        self._chunk_iterator = self._iterate()

    @property
    def text(self) -> str:
        """Text delivered so far."""
        return "".join(self._chunks)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> str:
        if self._finalized:
            raise StopAsyncIteration
        return await self._chunk_iterator.__anext__()

    async def aclose(self) -> None:
        """Stop consuming and finalize with the chunks delivered so far."""
        await self._chunk_iterator.aclose()
        await self._finalize()

    async def _iterate(self) -> AsyncGenerator[str, None]:
        try:
            async for chunk in self._upstream:
                self._chunks.append(chunk)
                yield chunk
        except Exception as exc:
            error = wrap_error(exc, "stream")
            logger.error("stream_failed", error=str(exc), error_type=type(exc).__name__)
            self.session.report_error(error, critical=True)
            if error is exc:
                raise
            raise error from exc
        finally:
            await self._finalize()

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def _finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True

        upstream_close = getattr(self._upstream, "aclose", None)
        if upstream_close is not None:
            try:
                await upstream_close()
            except Exception as exc:
                logger.warning("stream_upstream_close_failed", error=str(exc))

        message = Message.assistant(self.text)
        self.session.append(message)
        self.response = message

        duration_ms = (time.monotonic() - self._start_time) * 1000
        self.session.notify(
            AgentEvent.INFERENCE_STOP,
            InferenceStopEvent(response=message, duration_ms=duration_ms),
        )
        self.session.notify(
            AgentEvent.STREAM_STOP,
            StreamStopEvent(request=self.request, response=message, duration_ms=duration_ms),
        )


class StreamOrchestrator:
    """Sets up a streaming interaction and hands out its ChatStream."""

    def __init__(self, session: AgentSession) -> None:
        self.session = session

    def open(self, request: MessageRequest) -> ChatStream:
        session = self.session
        start_time = time.monotonic()
        session.notify(
            AgentEvent.STREAM_START,
            StreamStartEvent(request=request, instructions=session.resolve_instructions()),
        )

        try:
            provider = session.resolve_provider()
            session.fill_history(request)
            messages = session.resolve_history().get_messages()
            instructions = session.resolve_instructions()
            tools = session.tool_snapshot()

            session.notify(
                AgentEvent.INFERENCE_START,
                InferenceStartEvent(
                    messages=messages,
                    instructions=instructions,
                    tool_names=[tool.name for tool in tools],
                ),
            )
            upstream = provider.stream(messages, instructions, tools)
        except Exception as exc:
            error = wrap_error(exc, "stream")
            session.report_error(error, critical=True)
            if error is exc:
                raise
            raise error from exc

        return ChatStream(session, request, upstream, start_time)
