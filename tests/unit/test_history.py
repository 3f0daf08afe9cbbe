"""Unit tests for chat histories."""

import pytest

from agentcore.domain.chat.history import FileChatHistory, InMemoryChatHistory
from agentcore.domain.chat.types import Message, ToolCallResult, Usage
from agentcore.shared.exceptions import ChatHistoryError


class TestInMemoryChatHistory:
    def test_context_window_evicts_oldest(self):
        history = InMemoryChatHistory(context_window=2)

        for text in ("one", "two", "three"):
            history.add_message(Message.user(text))

        assert [m.text for m in history.get_messages()] == ["two", "three"]
        assert history.get_last_message().text == "three"

    def test_invalid_context_window(self):
        with pytest.raises(ValueError):
            InMemoryChatHistory(context_window=0)

    def test_get_messages_returns_copy(self):
        history = InMemoryChatHistory()
        history.add_message(Message.user("one"))

        history.get_messages().clear()

        assert len(history) == 1

    def test_total_usage_sums_messages(self):
        history = InMemoryChatHistory()
        history.add_message(Message.user("q"))
        history.add_message(Message.assistant("a", usage=Usage.of(10, 5)))
        history.add_message(Message.assistant("b", usage=Usage.of(3, 2)))

        assert history.calculate_total_usage() == Usage.of(13, 7)

    def test_remove_oldest_and_flush(self):
        history = InMemoryChatHistory()
        history.add_message(Message.user("one"))
        history.add_message(Message.user("two"))

        history.remove_oldest_message()
        assert [m.text for m in history.get_messages()] == ["two"]

        history.flush_all()
        assert history.get_messages() == []
        assert history.get_last_message() is None


class TestFileChatHistory:
    def test_persists_and_reloads(self, tmp_path):
        path = tmp_path / "chat" / "history.jsonl"
        history = FileChatHistory(path)
        history.add_message(Message.user("hello"))
        history.add_message(
            Message.tool_result(ToolCallResult(tool_call_id="c1", tool_name="echo", content="x"))
        )

        reloaded = FileChatHistory(path)

        messages = reloaded.get_messages()
        assert messages[0].text == "hello"
        assert isinstance(messages[1].content, ToolCallResult)
        assert len(path.read_text(encoding="utf-8").splitlines()) == 2

    def test_file_mirrors_window(self, tmp_path):
        path = tmp_path / "history.jsonl"
        history = FileChatHistory(path, context_window=1)
        history.add_message(Message.user("one"))
        history.add_message(Message.user("two"))

        assert [m.text for m in FileChatHistory(path).get_messages()] == ["two"]

    def test_flush_empties_file(self, tmp_path):
        path = tmp_path / "history.jsonl"
        history = FileChatHistory(path)
        history.add_message(Message.user("one"))

        history.flush_all()

        assert path.read_text(encoding="utf-8") == ""

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "history.jsonl"
        path.write_text("not json\n", encoding="utf-8")

        with pytest.raises(ChatHistoryError):
            FileChatHistory(path)
