"""Lifecycle event names and payloads published on the observer bus."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from agentcore.domain.chat.types import Message, MessageRequest, ToolCallRequest, ToolCallResult


class AgentEvent(str, Enum):
    CHAT_START = "chat-start"
    CHAT_STOP = "chat-stop"
    STREAM_START = "stream-start"
    STREAM_STOP = "stream-stop"
    STRUCTURED_START = "structured-start"
    STRUCTURED_STOP = "structured-stop"
    STRUCTURED_OUTPUT = "structured-output"
    INFERENCE_START = "inference-start"
    INFERENCE_STOP = "inference-stop"
    MESSAGE_SAVING = "message-saving"
    MESSAGE_SAVED = "message-saved"
    TOOL_CALLING = "tool-calling"
    TOOL_CALLED = "tool-called"
    TOOL_ADDED = "tool-added"
    INSTRUCTIONS_CHANGED = "instructions-changed"
    ERROR = "error"


class StructuredStage(str, Enum):
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    DESERIALIZING = "deserializing"
    DESERIALIZED = "deserialized"
    VALIDATION_FAILED = "validation_failed"


class Observer(Protocol):
    """Anything with an ``update`` method can observe an agent."""

    def update(self, event_type: str, payload: Any) -> None: ...


@dataclass
class ChatStartEvent:
    request: MessageRequest
    instructions: str


@dataclass
class ChatStopEvent:
    request: MessageRequest
    response: Message | None
    duration_ms: float


@dataclass
class StreamStartEvent:
    request: MessageRequest
    instructions: str


@dataclass
class StreamStopEvent:
    request: MessageRequest
    response: Message
    duration_ms: float


@dataclass
class StructuredStartEvent:
    request: MessageRequest
    response_type: str
    max_retries: int


@dataclass
class StructuredStopEvent:
    request: MessageRequest
    result: Any
    attempts: int
    duration_ms: float


@dataclass
class StructuredOutputEvent:
    """Progress of one extraction attempt."""

    stage: StructuredStage
    attempt: int
    raw: str | None = None
    error: str | None = None


@dataclass
class InferenceStartEvent:
    messages: list[Message]
    instructions: str
    tool_names: list[str]


@dataclass
class InferenceStopEvent:
    response: Message | None
    duration_ms: float


@dataclass
class MessageEvent:
    """Payload of both message-saving and message-saved."""

    message: Message


@dataclass
class ToolCallingEvent:
    request: ToolCallRequest
    tool_names: list[str]


@dataclass
class ToolCalledEvent:
    request: ToolCallRequest
    results: list[ToolCallResult]
    duration_ms: float
    # call id -> error for calls that failed or named an unknown tool
    errors: dict[str, str] = field(default_factory=dict)


@dataclass
class ErrorEvent:
    """A failure. Non-critical errors were absorbed and the interaction continues."""

    exception: BaseException
    critical: bool
    message: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass
class InstructionsChangedEvent:
    old_instructions: str | None
    new_instructions: str | None


@dataclass
class ToolAddedEvent:
    tool_name: str
