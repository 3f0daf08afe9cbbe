"""Message model shared by the orchestrators, providers and chat histories."""

from collections.abc import Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    MODEL = "model"
    TOOL = "tool"
    SYSTEM = "system"
    DEVELOPER = "developer"


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class FunctionCall(BaseModel):
    """Function name plus its arguments as an opaque JSON string."""

    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall

    @property
    def name(self) -> str:
        return self.function.name


class ToolCallRequest(BaseModel):
    """A model turn asking for one or more tool invocations."""

    type: Literal["tool_call_request"] = "tool_call_request"
    id: str
    calls: list[ToolCall]


class ToolCallResult(BaseModel):
    """Outcome of a single tool call, matched to the request by ``tool_call_id``."""

    type: Literal["tool_call_result"] = "tool_call_result"
    tool_call_id: str
    tool_name: str
    content: str


Content = Annotated[
    TextContent | ToolCallRequest | ToolCallResult,
    Field(discriminator="type"),
]


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def of(cls, prompt_tokens: int, completion_tokens: int) -> "Usage":
        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class Attachment(BaseModel):
    """Document or image sent alongside a user message."""

    type: Literal["document", "image"]
    content: str
    content_type: Literal["url", "base64"] = "base64"
    media_type: str | None = None


class Message(BaseModel):
    """A single conversation message.

    Invariants:
    - role ``tool`` always carries a ``ToolCallResult`` and vice versa
    - a ``ToolCallRequest`` only comes from the ``assistant``/``model`` role
    """

    role: MessageRole
    content: Content
    usage: Usage | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("content", mode="before")
    @classmethod
    def _wrap_plain_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return TextContent(text=value)
        return value

    @model_validator(mode="after")
    def _check_role_content(self) -> "Message":
        is_result = isinstance(self.content, ToolCallResult)
        if (self.role == MessageRole.TOOL) != is_result:
            raise ValueError("role 'tool' must carry exactly a tool call result")
        if isinstance(self.content, ToolCallRequest) and self.role not in (
            MessageRole.ASSISTANT,
            MessageRole.MODEL,
        ):
            raise ValueError("tool call requests can only come from the assistant")
        return self

    @classmethod
    def user(cls, text: str, attachments: Sequence[Attachment] | None = None) -> "Message":
        return cls(
            role=MessageRole.USER,
            content=TextContent(text=text),
            attachments=list(attachments or []),
        )

    @classmethod
    def assistant(cls, text: str, usage: Usage | None = None) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=TextContent(text=text), usage=usage)

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=TextContent(text=text))

    @classmethod
    def tool_result(cls, result: ToolCallResult) -> "Message":
        return cls(role=MessageRole.TOOL, content=result)

    @property
    def text(self) -> str | None:
        """Text of a plain text message, None for tool traffic."""
        if isinstance(self.content, TextContent):
            return self.content.text
        return None


class MessageRequest(BaseModel):
    """Inbound messages of one agent interaction."""

    messages: list[Message]

    @classmethod
    def coerce(
        cls, value: "MessageRequest | Message | str | Sequence[Message]"
    ) -> "MessageRequest":
        if isinstance(value, MessageRequest):
            return value
        if isinstance(value, Message):
            return cls(messages=[value])
        if isinstance(value, str):
            return cls(messages=[Message.user(value)])
        return cls(messages=list(value))
