"""OpenAI-compatible provider.

Serves OpenAI and DeepSeek (which exposes an OpenAI-compatible API under its
own base URL).
"""

import json
import time
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import uuid4

import openai
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agentcore.domain.chat.types import (
    FunctionCall,
    Message,
    MessageRole,
    TextContent,
    ToolCall,
    ToolCallRequest,
    ToolCallResult,
    Usage,
)
from agentcore.domain.tools.base import Tool
from agentcore.infrastructure.ai.provider import SyncChatMixin
from agentcore.shared.exceptions import ProviderError, ProviderRateLimitError
from agentcore.shared.logging import get_logger
from agentcore.shared.parsing import extract_json

logger = get_logger(__name__)

T = TypeVar("T")

_ROLE_MAP = {
    MessageRole.USER: "user",
    MessageRole.DEVELOPER: "user",
    MessageRole.SYSTEM: "system",
    MessageRole.ASSISTANT: "assistant",
    MessageRole.MODEL: "assistant",
}


@dataclass(frozen=True, slots=True)
class _ToolCall:
    id: str
    name: str
    arguments: str


class OpenAIProvider(SyncChatMixin):
    """Chat completions provider with retries and error mapping.

    Includes:
    - Message and tool mapping to the chat completions format
    - Tool call parsing into ToolCallRequest messages
    - Streaming text deltas
    - JSON-mode structured output
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        max_tokens: int = 4096,
        name: str = "openai",
        client: AsyncOpenAI | None = None,
    ):
        """Initialize the provider.

        Args:
            api_key: API key of the OpenAI-compatible endpoint
            model: Model name (e.g., gpt-4o-mini, deepseek-chat)
            base_url: Endpoint override, e.g. https://api.deepseek.com
            max_tokens: Maximum tokens per response
            name: Provider name used in logs and errors
            client: Preconfigured client, mainly for tests
        """
        self.name = name
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type((openai.APITimeoutError, openai.APIConnectionError)),
        reraise=True,
    )
    async def call_api(self, **params: Any) -> Any:
        """Call the chat completions API with retry logic for transient errors."""
        return await self.client.chat.completions.create(
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
        params: dict[str, Any] = {"messages": self.convert_messages(messages, instructions)}
        if tools:
            params["tools"] = self.convert_tools(tools)

        start_time = time.monotonic()
        try:
            response = await self.call_api(**params)
        except openai.OpenAIError as e:
            raise self._map_error(e) from e

        message = self.parse_response(response)
        logger.debug(
            "ai_completion_success",
            provider=self.name,
            model=self.model,
            tool_call=isinstance(message.content, ToolCallRequest),
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
        try:
            response_stream = await self.call_api(
                messages=self.convert_messages(messages, instructions),
                stream=True,
            )
            async for chunk in response_stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except openai.OpenAIError as e:
            raise self._map_error(e) from e

    async def structured(
        self,
        messages: Sequence[Message],
        instructions: str,
        response_model: type[T],
        schema: dict[str, Any],
    ) -> T:
        system = (
            f"{instructions}\n\nRespond with a JSON object matching this schema:\n"
            f"{json.dumps(schema)}"
        )
        try:
            response = await self.call_api(
                messages=self.convert_messages(messages, system),
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise self._map_error(e) from e

        content = response.choices[0].message.content or ""
        try:
            return TypeAdapter(response_model).validate_json(extract_json(content))
        except ValidationError as e:
            raise ProviderError(
                f"{self.name} returned invalid structured output: {e}", provider=self.name
            ) from e

    # ----- Mapping -----

    def convert_tools(self, tools: Sequence[Tool]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters_schema(),
                },
            }
            for tool in tools
        ]

    def convert_messages(
        self, messages: Sequence[Message], instructions: str
    ) -> list[dict[str, Any]]:
        converted: list[dict[str, Any]] = []
        if instructions:
            converted.append({"role": "system", "content": instructions})

        for message in messages:
            content = message.content
            if isinstance(content, ToolCallResult):
                converted.append(
                    {
                        "role": "tool",
                        "tool_call_id": content.tool_call_id,
                        "content": content.content,
                    }
                )
            elif isinstance(content, ToolCallRequest):
                converted.append(
                    {
                        "role": "assistant",
                        "content": message.metadata.get("text") or None,
                        "tool_calls": [
                            {
                                "id": call.id,
                                "type": "function",
                                "function": {
                                    "name": call.function.name,
                                    "arguments": call.function.arguments,
                                },
                            }
                            for call in content.calls
                        ],
                    }
                )
            else:
                converted.append(
                    {
                        "role": _ROLE_MAP[message.role],
                        "content": self._convert_text(message, content),
                    }
                )
        return converted

    def _convert_text(self, message: Message, content: TextContent) -> str | list[dict[str, Any]]:
        images = [a for a in message.attachments if a.type == "image"]
        if len(images) != len(message.attachments):
            logger.warning(
                "attachment_not_supported", provider=self.name, attachment_type="document"
            )
        if not images:
            return content.text

        parts: list[dict[str, Any]] = [{"type": "text", "text": content.text}]
        for image in images:
            url = (
                image.content
                if image.content_type == "url"
                else f"data:{image.media_type or 'image/png'};base64,{image.content}"
            )
            parts.append({"type": "image_url", "image_url": {"url": url}})
        return parts

    def parse_response(self, response: ChatCompletion) -> Message:
        choice = response.choices[0]
        message = choice.message
        usage = (
            Usage.of(response.usage.prompt_tokens, response.usage.completion_tokens)
            if response.usage
            else None
        )

        tool_calls = self._extract_tool_calls(message)
        if tool_calls:
            return Message(
                role=MessageRole.ASSISTANT,
                content=ToolCallRequest(
                    id=getattr(response, "id", None) or f"req_{uuid4().hex}",
                    calls=[
                        ToolCall(
                            id=tc.id,
                            function=FunctionCall(name=tc.name, arguments=tc.arguments),
                        )
                        for tc in tool_calls
                    ],
                ),
                usage=usage,
                metadata={"text": message.content} if message.content else {},
            )

        return Message.assistant(message.content or "", usage=usage)

    @staticmethod
    def _extract_tool_calls(message: Any) -> list[_ToolCall]:
        tool_calls: list[_ToolCall] = []
        for tc in getattr(message, "tool_calls", None) or []:
            tc_id = getattr(tc, "id", None)
            tc_function = getattr(tc, "function", None)
            tc_name = getattr(tc_function, "name", None)
            tc_arguments = getattr(tc_function, "arguments", None)
            if (
                isinstance(tc_id, str)
                and isinstance(tc_name, str)
                and isinstance(tc_arguments, str)
            ):
                tool_calls.append(_ToolCall(id=tc_id, name=tc_name, arguments=tc_arguments))
        return tool_calls

    def _map_error(self, e: openai.OpenAIError) -> ProviderError:
        if isinstance(e, openai.RateLimitError):
            logger.warning("ai_rate_limited", provider=self.name, error=str(e))
            return ProviderRateLimitError(
                f"{self.name} rate limit exceeded. Retry later.",
                provider=self.name,
                status_code=429,
            )
        if isinstance(e, openai.APIStatusError):
            logger.error("ai_api_error", provider=self.name, status=e.status_code, error=str(e))
            return ProviderError(
                f"{self.name} API error: {e.status_code}",
                provider=self.name,
                status_code=e.status_code,
            )
        if isinstance(e, openai.APIConnectionError):
            logger.error("ai_connection_error", provider=self.name, error=str(e))
            return ProviderError(f"Connection to {self.name} failed", provider=self.name)
        logger.error("ai_unexpected_error", provider=self.name, error=str(e))
        return ProviderError(f"Unexpected {self.name} error: {e}", provider=self.name)

    async def close(self) -> None:
        await self.client.close()
