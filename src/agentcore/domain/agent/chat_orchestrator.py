"""Chat loop with tool call rounds.

States: awaiting request -> model call -> (tool round -> model call)* -> done | failed.
Each model call is bracketed by inference-start/inference-stop. A tool call
request is appended to the history, executed, and its results are appended
one tool message per call before the model is asked again.
"""

import time

from agentcore.domain.agent.events import (
    AgentEvent,
    ChatStartEvent,
    ChatStopEvent,
    InferenceStartEvent,
    InferenceStopEvent,
)
from agentcore.domain.agent.session import AgentSession, wrap_error
from agentcore.domain.chat.types import Message, MessageRequest, ToolCallRequest
from agentcore.shared.exceptions import AgentError, ToolRoundLimitError
from agentcore.shared.logging import get_logger

logger = get_logger(__name__)


async def infer(
    session: AgentSession,
    messages: list[Message] | None = None,
    instructions: str | None = None,
) -> Message:
    """Run one provider call on the current history (or on ``messages``)."""
    provider = session.resolve_provider()
    instructions = instructions or session.resolve_instructions()
    tools = session.tool_snapshot()
    if messages is None:
        messages = session.resolve_history().get_messages()

    session.notify(
        AgentEvent.INFERENCE_START,
        InferenceStartEvent(
            messages=messages,
            instructions=instructions,
            tool_names=[tool.name for tool in tools],
        ),
    )
    start_time = time.monotonic()
    response = await provider.chat_async(messages, instructions, tools)
    session.notify(
        AgentEvent.INFERENCE_STOP,
        InferenceStopEvent(response=response, duration_ms=(time.monotonic() - start_time) * 1000),
    )
    return response


async def run_tool_round(session: AgentSession, response: Message) -> None:
    """Append a tool call request, execute it and append its results."""
    if not isinstance(response.content, ToolCallRequest):
        raise AgentError("Tool round requires a tool call request response")
    session.append(response)
    results = await session.tool_executor.execute(response.content, session.tool_snapshot())
    session.append_all([Message.tool_result(result) for result in results])


class ChatOrchestrator:
    """Drives one chat interaction to a final model answer."""

    def __init__(self, session: AgentSession) -> None:
        self.session = session

    async def run(self, request: MessageRequest) -> Message:
        session = self.session
        start_time = time.monotonic()
        session.notify(
            AgentEvent.CHAT_START,
            ChatStartEvent(request=request, instructions=session.resolve_instructions()),
        )

        try:
            session.resolve_provider()
            session.fill_history(request)

            rounds = 0
            response = await infer(session)
            while isinstance(response.content, ToolCallRequest):
                rounds += 1
                if session.max_tool_rounds is not None and rounds > session.max_tool_rounds:
                    raise ToolRoundLimitError(session.max_tool_rounds)
                logger.debug(
                    "tool_round",
                    round=rounds,
                    calls=len(response.content.calls),
                )
                await run_tool_round(session, response)
                response = await infer(session)

            session.append(response)
        except Exception as exc:
            error = wrap_error(exc, "chat")
            logger.error("chat_failed", error=str(exc), error_type=type(exc).__name__)
            session.report_error(error, critical=True)
            session.notify(
                AgentEvent.CHAT_STOP,
                ChatStopEvent(
                    request=request,
                    response=None,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                ),
            )
            if error is exc:
                raise
            raise error from exc

        session.notify(
            AgentEvent.CHAT_STOP,
            ChatStopEvent(
                request=request,
                response=response,
                duration_ms=(time.monotonic() - start_time) * 1000,
            ),
        )
        return response
