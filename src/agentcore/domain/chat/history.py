"""Chat history implementations.

A chat history owns the canonical message sequence of a conversation and keeps
it within a context window by evicting the oldest messages first.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from agentcore.domain.chat.types import Message, Usage
from agentcore.shared.exceptions import ChatHistoryError
from agentcore.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTEXT_WINDOW = 100


@runtime_checkable
class ChatHistory(Protocol):
    """Protocol for chat histories used by the agent."""

    context_window: int

    def add_message(self, message: Message) -> None: ...

    def get_messages(self) -> list[Message]: ...

    def get_last_message(self) -> Message | None: ...

    def remove_oldest_message(self) -> None: ...

    def flush_all(self) -> None: ...

    def calculate_total_usage(self) -> Usage: ...


class BaseChatHistory:
    """Window handling and usage accounting shared by the concrete histories."""

    def __init__(self, context_window: int = DEFAULT_CONTEXT_WINDOW) -> None:
        if context_window <= 0:
            raise ValueError("context_window must be greater than 0")
        self.context_window = context_window
        self._messages: list[Message] = []

    def add_message(self, message: Message) -> None:
        self._messages.append(message)
        self._enforce_window()
        self._persist()

    def get_messages(self) -> list[Message]:
        return list(self._messages)

    def get_last_message(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def remove_oldest_message(self) -> None:
        if self._messages:
            self._messages.pop(0)
            self._persist()

    def flush_all(self) -> None:
        self._messages.clear()
        self._persist()

    def calculate_total_usage(self) -> Usage:
        total = Usage()
        for message in self._messages:
            if message.usage is not None:
                total = total + message.usage
        return total

    def __len__(self) -> int:
        return len(self._messages)

    def _enforce_window(self) -> None:
        overflow = len(self._messages) - self.context_window
        if overflow > 0:
            del self._messages[:overflow]

    def _persist(self) -> None:
        """Hook for persistent histories."""


class InMemoryChatHistory(BaseChatHistory):
    """Keeps the conversation in process memory."""


class FileChatHistory(BaseChatHistory):
    """Stores the conversation as JSON Lines, one message per line.

    The file is loaded on construction and rewritten on every change, so it
    always mirrors the windowed message list.
    """

    def __init__(self, path: Path | str, context_window: int = DEFAULT_CONTEXT_WINDOW) -> None:
        super().__init__(context_window=context_window)
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
            self._messages = [Message.model_validate_json(line) for line in lines if line.strip()]
        except (OSError, ValidationError) as exc:
            raise ChatHistoryError(
                f"Failed to load chat history from {self.path}",
                details={"path": str(self.path), "reason": str(exc)},
            ) from exc

        self._enforce_window()
        logger.debug("chat_history_loaded", path=str(self.path), messages=len(self._messages))

    def _persist(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            payload = "".join(f"{message.model_dump_json()}\n" for message in self._messages)
            self.path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise ChatHistoryError(
                f"Failed to write chat history to {self.path}",
                details={"path": str(self.path), "reason": str(exc)},
            ) from exc
