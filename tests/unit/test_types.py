"""Unit tests for the message model."""

import pytest
from pydantic import ValidationError

from agentcore.domain.chat.types import (
    FunctionCall,
    Message,
    MessageRequest,
    MessageRole,
    TextContent,
    ToolCall,
    ToolCallRequest,
    ToolCallResult,
    Usage,
)


class TestMessageInvariants:
    """Role and content must agree."""

    def test_tool_role_requires_tool_result(self):
        with pytest.raises(ValidationError):
            Message(role=MessageRole.TOOL, content=TextContent(text="hi"))

    def test_tool_result_requires_tool_role(self):
        result = ToolCallResult(tool_call_id="c1", tool_name="echo", content="hi")
        with pytest.raises(ValidationError):
            Message(role=MessageRole.USER, content=result)

    def test_tool_call_request_only_from_assistant(self):
        request = ToolCallRequest(
            id="r1",
            calls=[ToolCall(id="c1", function=FunctionCall(name="echo", arguments="{}"))],
        )
        with pytest.raises(ValidationError):
            Message(role=MessageRole.USER, content=request)

        assert Message(role=MessageRole.MODEL, content=request).text is None

    def test_plain_string_content_becomes_text(self):
        message = Message(role=MessageRole.USER, content="hello")

        assert isinstance(message.content, TextContent)
        assert message.text == "hello"


class TestSerialization:
    def test_content_variant_survives_json(self):
        message = Message.tool_result(
            ToolCallResult(tool_call_id="c1", tool_name="echo", content="hi")
        )

        restored = Message.model_validate_json(message.model_dump_json())

        assert isinstance(restored.content, ToolCallResult)
        assert restored.content.tool_call_id == "c1"
        assert restored.role == MessageRole.TOOL


class TestUsage:
    def test_of_sets_total(self):
        usage = Usage.of(10, 5)

        assert usage.total_tokens == 15

    def test_addition(self):
        total = Usage.of(10, 5) + Usage.of(1, 2)

        assert (total.prompt_tokens, total.completion_tokens, total.total_tokens) == (11, 7, 18)


class TestMessageRequestCoerce:
    def test_string_becomes_user_message(self):
        request = MessageRequest.coerce("hi")

        assert len(request.messages) == 1
        assert request.messages[0].role == MessageRole.USER
        assert request.messages[0].text == "hi"

    def test_message_and_list(self):
        first, second = Message.user("a"), Message.user("b")

        assert MessageRequest.coerce(first).messages == [first]
        assert MessageRequest.coerce([first, second]).messages == [first, second]

    def test_request_passes_through(self):
        request = MessageRequest(messages=[Message.user("a")])

        assert MessageRequest.coerce(request) is request
