"""Anthropic/Claude provider.

Tool calls arrive as ``tool_use`` blocks and go back as ``tool_result`` blocks
inside a user message. Consecutive tool results are merged into one user
message, which the Messages API requires.
"""

import json
import time
from collections.abc import AsyncIterator, Sequence
from typing import Any, TypeVar
from uuid import uuid4

import anthropic
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agentcore.domain.chat.types import (
    Attachment,
    FunctionCall,
    Message,
    MessageRole,
    ToolCall,
    ToolCallRequest,
    ToolCallResult,
    Usage,
)
from agentcore.domain.tools.base import Tool
from agentcore.infrastructure.ai.provider import SyncChatMixin
from agentcore.shared.exceptions import ProviderError, ProviderRateLimitError
from agentcore.shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

STRUCTURED_TOOL_NAME = "structured_output"


class AnthropicProvider(SyncChatMixin):
    """Messages API provider with retries and error mapping."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4096,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        """Initialize the provider.

        Args:
            api_key: Anthropic API key
            model: Model name
            max_tokens: Maximum tokens per response
            client: Preconfigured client, mainly for tests
        """
        self.name = "anthropic"
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type((anthropic.APITimeoutError, anthropic.APIConnectionError)),
        reraise=True,
    )
    async def call_api(self, **params: Any) -> Any:
        """Call the Messages API with retry logic for transient errors."""
        return await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            **params,
        )

    async def chat_async(
        self,
        messages: Sequence[Message],
        instructions: str,
        tools: Sequence[Tool],
    ) -> Message:
        system, converted = self.convert_messages(messages, instructions)
        params: dict[str, Any] = {"messages": converted}
        if system:
            params["system"] = system
        if tools:
            params["tools"] = self.convert_tools(tools)

        start_time = time.monotonic()
        try:
            response = await self.call_api(**params)
        except anthropic.AnthropicError as e:
            raise self._map_error(e) from e

        message = self.parse_response(response)
        logger.debug(
            "ai_completion_success",
            provider=self.name,
            model=self.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=round((time.monotonic() - start_time) * 1000, 2),
        )
        return message

    async def stream(
        self,
        messages: Sequence[Message],
        instructions: str,
        tools: Sequence[Tool],
    ) -> AsyncIterator[str]:
        # Tools are not offered while streaming; a streamed answer is text only
        system, converted = self.convert_messages(messages, instructions)
        params: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": converted,
        }
        if system:
            params["system"] = system

        try:
            async with self.client.messages.stream(**params) as response_stream:
                async for text in response_stream.text_stream:
                    yield text
        except anthropic.AnthropicError as e:
            raise self._map_error(e) from e

    async def structured(
        self,
        messages: Sequence[Message],
        instructions: str,
        response_model: type[T],
        schema: dict[str, Any],
    ) -> T:
        """Force a single tool call whose input schema is the requested structure."""
        system, converted = self.convert_messages(messages, instructions)
        params: dict[str, Any] = {
            "messages": converted,
            "tools": [
                {
                    "name": STRUCTURED_TOOL_NAME,
                    "description": "Return the answer as structured data.",
                    "input_schema": schema,
                }
            ],
            "tool_choice": {"type": "tool", "name": STRUCTURED_TOOL_NAME},
        }
        if system:
            params["system"] = system

        try:
            response = await self.call_api(**params)
        except anthropic.AnthropicError as e:
            raise self._map_error(e) from e

        block = next(
            (b for b in response.content if getattr(b, "type", None) == "tool_use"),
            None,
        )
        if block is None:
            raise ProviderError(
                f"{self.name} did not return structured output", provider=self.name
            )
        try:
            return TypeAdapter(response_model).validate_python(block.input)
        except ValidationError as e:
            raise ProviderError(
                f"{self.name} returned invalid structured output: {e}", provider=self.name
            ) from e

    # ----- Mapping -----

    def convert_tools(self, tools: Sequence[Tool]) -> list[dict[str, Any]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters_schema(),
            }
            for tool in tools
        ]

    def convert_messages(
        self, messages: Sequence[Message], instructions: str
    ) -> tuple[str, list[dict[str, Any]]]:
        """Split system text from the conversation and convert the rest.

        Returns:
            Tuple of (system prompt, messages in Messages API format)
        """
        system_parts = [instructions] if instructions else []
        converted: list[dict[str, Any]] = []

        for message in messages:
            content = message.content
            if isinstance(content, ToolCallResult):
                block = {
                    "type": "tool_result",
                    "tool_use_id": content.tool_call_id,
                    "content": content.content,
                }
                if converted and _is_tool_result_message(converted[-1]):
                    converted[-1]["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})
            elif isinstance(content, ToolCallRequest):
                blocks: list[dict[str, Any]] = []
                if message.metadata.get("text"):
                    blocks.append({"type": "text", "text": message.metadata["text"]})
                for call in content.calls:
                    blocks.append(
                        {
                            "type": "tool_use",
                            "id": call.id,
                            "name": call.function.name,
                            "input": json.loads(call.function.arguments or "{}"),
                        }
                    )
                converted.append({"role": "assistant", "content": blocks})
            elif message.role == MessageRole.SYSTEM:
                system_parts.append(content.text)
            elif message.role in (MessageRole.ASSISTANT, MessageRole.MODEL):
                converted.append({"role": "assistant", "content": content.text})
            else:
                converted.append({"role": "user", "content": self._user_content(message)})

        return "\n\n".join(system_parts), converted

    @staticmethod
    def _user_content(message: Message) -> str | list[dict[str, Any]]:
        assert message.text is not None
        if not message.attachments:
            return message.text
        blocks = [_attachment_block(attachment) for attachment in message.attachments]
        blocks.append({"type": "text", "text": message.text})
        return blocks

    def parse_response(self, response: Any) -> Message:
        usage = Usage.of(response.usage.input_tokens, response.usage.output_tokens)
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        calls = [
            ToolCall(
                id=block.id,
                function=FunctionCall(name=block.name, arguments=json.dumps(block.input)),
            )
            for block in response.content
            if getattr(block, "type", None) == "tool_use"
        ]

        if calls:
            return Message(
                role=MessageRole.ASSISTANT,
                content=ToolCallRequest(
                    id=getattr(response, "id", None) or f"req_{uuid4().hex}",
                    calls=calls,
                ),
                usage=usage,
                metadata={"text": text} if text else {},
            )
        return Message.assistant(text, usage=usage)

    def _map_error(self, e: anthropic.AnthropicError) -> ProviderError:
        if isinstance(e, anthropic.RateLimitError):
            logger.warning("ai_rate_limited", provider=self.name, error=str(e))
            return ProviderRateLimitError(
                f"{self.name} rate limit exceeded. Retry later.",
                provider=self.name,
                status_code=429,
            )
        if isinstance(e, anthropic.APIStatusError):
            logger.error("ai_api_error", provider=self.name, status=e.status_code, error=str(e))
            return ProviderError(
                f"{self.name} API error: {e.status_code}",
                provider=self.name,
                status_code=e.status_code,
            )
        if isinstance(e, anthropic.APIConnectionError):
            logger.error("ai_connection_error", provider=self.name, error=str(e))
            return ProviderError(f"Connection to {self.name} failed", provider=self.name)
        logger.error("ai_unexpected_error", provider=self.name, error=str(e))
        return ProviderError(f"Unexpected {self.name} error: {e}", provider=self.name)

    async def close(self) -> None:
        await self.client.close()


def _is_tool_result_message(item: dict[str, Any]) -> bool:
    content = item["content"]
    return (
        item["role"] == "user"
        and isinstance(content, list)
        and all(block.get("type") == "tool_result" for block in content)
    )


def _attachment_block(attachment: Attachment) -> dict[str, Any]:
    if attachment.content_type == "url":
        source: dict[str, Any] = {"type": "url", "url": attachment.content}
    else:
        default_media_type = "image/png" if attachment.type == "image" else "application/pdf"
        source = {
            "type": "base64",
            "media_type": attachment.media_type or default_media_type,
            "data": attachment.content,
        }
    return {"type": attachment.type, "source": source}
