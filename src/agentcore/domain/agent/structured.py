"""Structured output extraction with retries.

The model is instructed to answer with JSON only. Its answer is stripped of
Markdown code fences and validated into the requested type. A failed attempt
is fed back to the model as an extra user message on the next attempt. A tool
call round also uses up an attempt, and the next attempt asks for the final
answer.
"""

import json
import time
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from agentcore.domain.agent.chat_orchestrator import infer, run_tool_round
from agentcore.domain.agent.events import (
    AgentEvent,
    StructuredOutputEvent,
    StructuredStage,
    StructuredStartEvent,
    StructuredStopEvent,
)
from agentcore.domain.agent.session import AgentSession, wrap_error
from agentcore.domain.chat.types import Message, MessageRequest, ToolCallRequest
from agentcore.shared.exceptions import StructuredExtractionError
from agentcore.shared.logging import get_logger
from agentcore.shared.parsing import extract_json

logger = get_logger(__name__)

T = TypeVar("T")

RETRY_FEEDBACK = "The previous attempt failed. Please correct your response. Error: "
TOOL_ROUND_FEEDBACK = "Tool call executed, retrying for final structured response."


def build_structured_instructions(
    instructions: str, type_name: str, schema: dict[str, Any]
) -> str:
    return (
        f"{instructions}\n\n"
        "You MUST respond with a valid JSON object that conforms to the requested structure. "
        "Do not include any other text, explanations, or markdown formatting before or after "
        f"the JSON object. The JSON should represent an instance of: {type_name}\n\n"
        f"JSON schema:\n{json.dumps(schema)}"
    )


class StructuredExtractor:
    """Asks the model for a structured answer until it validates or attempts run out."""

    def __init__(self, session: AgentSession) -> None:
        self.session = session

    async def run(
        self,
        request: MessageRequest,
        response_model: type[T],
        max_retries: int,
        schema: dict[str, Any] | None = None,
    ) -> T:
        """Extract an instance of ``response_model`` from the conversation.

        Args:
            request: Inbound messages
            response_model: Any type pydantic can validate (model, dataclass, ...)
            max_retries: Extra attempts after the first; total is max_retries + 1
            schema: JSON schema shown to the model, derived from the type if omitted

        Returns:
            The validated value

        Raises:
            StructuredExtractionError: If no attempt produced a valid value
            AgentError: If the provider or history failed
        """
        session = self.session
        adapter: TypeAdapter[T] = TypeAdapter(response_model)
        schema = schema or adapter.json_schema()
        type_name = getattr(response_model, "__name__", str(response_model))
        start_time = time.monotonic()
        attempts = 0

        session.notify(
            AgentEvent.STRUCTURED_START,
            StructuredStartEvent(request=request, response_type=type_name, max_retries=max_retries),
        )

        try:
            session.resolve_provider()
            session.fill_history(request)
            instructions = build_structured_instructions(
                session.resolve_instructions(), type_name, schema
            )

            feedback: str | None = None
            last_error: Exception | None = None
            for attempt in range(max_retries + 1):
                attempts = attempt + 1
                messages = session.resolve_history().get_messages()
                if feedback is not None:
                    messages.append(Message.user(RETRY_FEEDBACK + feedback))

                response = await infer(session, messages, instructions)

                if isinstance(response.content, ToolCallRequest):
                    await run_tool_round(session, response)
                    feedback = TOOL_ROUND_FEEDBACK
                    continue

                try:
                    value = self._parse(response, adapter, attempts)
                except ValueError as exc:
                    last_error = exc
                    feedback = str(exc)
                    logger.info(
                        "structured_attempt_failed",
                        attempt=attempts,
                        response_type=type_name,
                        error=feedback,
                    )
                    session.notify(
                        AgentEvent.STRUCTURED_OUTPUT,
                        StructuredOutputEvent(
                            stage=StructuredStage.VALIDATION_FAILED,
                            attempt=attempts,
                            raw=response.text,
                            error=feedback,
                        ),
                    )
                    session.report_error(exc, critical=False, context={"attempt": attempts})
                    # The model sees its own failed answer on the next attempt
                    session.append(response)
                    continue

                session.append(response)
                session.notify(
                    AgentEvent.STRUCTURED_STOP,
                    StructuredStopEvent(
                        request=request,
                        result=value,
                        attempts=attempts,
                        duration_ms=(time.monotonic() - start_time) * 1000,
                    ),
                )
                return value

            reason = str(last_error) if last_error else "model did not produce a final answer"
            raise StructuredExtractionError(attempts, reason) from last_error
        except Exception as exc:
            error = wrap_error(exc, "structured")
            logger.error("structured_failed", error=str(exc), attempts=attempts)
            session.report_error(error, critical=True)
            session.notify(
                AgentEvent.STRUCTURED_STOP,
                StructuredStopEvent(
                    request=request,
                    result=None,
                    attempts=attempts,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                ),
            )
            if error is exc:
                raise
            raise error from exc

    def _parse(self, response: Message, adapter: TypeAdapter[T], attempt: int) -> T:
        notify = self.session.notify
        notify(
            AgentEvent.STRUCTURED_OUTPUT,
            StructuredOutputEvent(stage=StructuredStage.EXTRACTING, attempt=attempt),
        )
        text = response.text
        if text is None:
            raise ValueError("Response did not contain text content")

        payload = extract_json(text)
        notify(
            AgentEvent.STRUCTURED_OUTPUT,
            StructuredOutputEvent(stage=StructuredStage.EXTRACTED, attempt=attempt, raw=payload),
        )
        if not payload:
            raise ValueError("Response was empty")

        notify(
            AgentEvent.STRUCTURED_OUTPUT,
            StructuredOutputEvent(
                stage=StructuredStage.DESERIALIZING, attempt=attempt, raw=payload
            ),
        )
        try:
            value = adapter.validate_json(payload)
        except ValidationError as exc:
            raise ValueError(f"Invalid structured output: {exc}") from exc
        notify(
            AgentEvent.STRUCTURED_OUTPUT,
            StructuredOutputEvent(stage=StructuredStage.DESERIALIZED, attempt=attempt),
        )
        return value
