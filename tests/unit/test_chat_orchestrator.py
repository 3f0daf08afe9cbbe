"""Unit tests for the chat loop."""

import asyncio

import pytest

from agentcore.domain.agent.agent import Agent
from agentcore.domain.agent.chat_orchestrator import run_tool_round
from agentcore.domain.agent.events import ChatStopEvent, ErrorEvent
from agentcore.domain.agent.session import DEFAULT_INSTRUCTIONS, AgentSession
from agentcore.domain.chat.types import Message, MessageRole, ToolCallRequest, ToolCallResult
from agentcore.domain.tools.base import FunctionTool
from agentcore.shared.exceptions import (
    AgentError,
    ConfigurationError,
    ProviderError,
    ToolRoundLimitError,
)


class TestChatBasics:
    def test_chat_and_chat_async_are_equivalent(self, scripted_provider, history):
        sync_agent = Agent(
            provider=scripted_provider([Message.assistant("Hi there")]),
            chat_history=history,
        )
        async_agent = Agent(
            provider=scripted_provider([Message.assistant("Hi there")]),
            chat_history=type(history)(),
        )

        sync_reply = sync_agent.chat("Hello")
        async_reply = asyncio.run(async_agent.chat_async("Hello"))

        assert sync_reply.text == async_reply.text == "Hi there"
        assert [m.text for m in sync_agent.resolve_chat_history().get_messages()] == [
            m.text for m in async_agent.resolve_chat_history().get_messages()
        ]

    @pytest.mark.asyncio
    async def test_event_sequence_without_tools(self, scripted_provider, history, recorder):
        agent = Agent(provider=scripted_provider([Message.assistant("Hi")]), chat_history=history)
        agent.add_observer(recorder)

        await agent.chat_async("Hello")

        assert recorder.names == [
            "chat-start",
            "message-saving",
            "message-saved",
            "inference-start",
            "inference-stop",
            "message-saving",
            "message-saved",
            "chat-stop",
        ]
        stop = recorder.payloads("chat-stop")[0]
        assert isinstance(stop, ChatStopEvent)
        assert stop.response.text == "Hi"

    @pytest.mark.asyncio
    async def test_default_instructions(self, scripted_provider, history):
        provider = scripted_provider([Message.assistant("ok")])
        agent = Agent(provider=provider, chat_history=history)

        await agent.chat_async("Hello")

        assert provider.calls[0]["instructions"] == DEFAULT_INSTRUCTIONS == (
            "You are a helpful assistant."
        )

    def test_instructions_changed_event(self, recorder):
        agent = Agent()
        agent.add_observer(recorder)

        agent.with_instructions("Be brief.")

        payload = recorder.payloads("instructions-changed")[0]
        assert payload.new_instructions == "Be brief."
        assert agent.resolve_instructions() == "Be brief."

    def test_chat_inside_running_loop_is_rejected(self, scripted_provider, history):
        agent = Agent(provider=scripted_provider([Message.assistant("x")]), chat_history=history)

        async def call_blocking():
            return agent.chat("Hello")

        with pytest.raises(AgentError):
            asyncio.run(call_blocking())


class TestBlockingCalls:
    def test_repeated_sync_chat_runs_on_one_loop(self, scripted_provider, history):
        class LoopTrackingProvider(scripted_provider):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                self.loops = []

            async def chat_async(self, messages, instructions, tools):
                self.loops.append(asyncio.get_running_loop())
                return await super().chat_async(messages, instructions, tools)

        provider = LoopTrackingProvider([Message.assistant("one"), Message.assistant("two")])
        agent = Agent(provider=provider, chat_history=history)

        try:
            assert agent.chat("first").text == "one"
            assert agent.chat("second").text == "two"
        finally:
            agent.close()

        assert len(provider.loops) == 2
        assert provider.loops[0] is provider.loops[1]
        assert provider.loops[0].is_closed()

    def test_chat_after_close_starts_a_new_loop(self, scripted_provider, history):
        provider = scripted_provider([Message.assistant("one"), Message.assistant("two")])
        agent = Agent(provider=provider, chat_history=history)

        agent.chat("first")
        agent.close()
        reply = agent.chat("second")
        agent.close()

        assert reply.text == "two"


class TestToolRounds:
    @pytest.mark.asyncio
    async def test_tool_round_requires_tool_call_request(self, history):
        session = AgentSession(chat_history=history)

        with pytest.raises(AgentError):
            await run_tool_round(session, Message.assistant("plain answer"))

        assert len(history) == 0

    @pytest.mark.asyncio
    async def test_tool_round_trip(self, scripted_provider, history, echo_tool, make_tool_request):
        provider = scripted_provider(
            [
                make_tool_request(("c1", "echo", '{"text": "hi"}')),
                Message.assistant("done"),
            ]
        )
        agent = Agent(provider=provider, chat_history=history).add_tool(echo_tool)

        reply = await agent.chat_async("Say hi")

        assert reply.text == "done"
        roles = [m.role for m in history.get_messages()]
        assert roles == [
            MessageRole.USER,
            MessageRole.ASSISTANT,
            MessageRole.TOOL,
            MessageRole.ASSISTANT,
        ]
        tool_message = history.get_messages()[2]
        assert tool_message.content == ToolCallResult(
            tool_call_id="c1", tool_name="echo", content="hi"
        )
        # second model call sees the tool result
        assert isinstance(provider.calls[1]["messages"][-1].content, ToolCallResult)
        assert provider.calls[0]["tools"] == ["echo"]

    @pytest.mark.asyncio
    async def test_inference_stop_after_every_provider_call(
        self, scripted_provider, history, recorder, echo_tool, make_tool_request
    ):
        provider = scripted_provider(
            [make_tool_request(("c1", "echo", '{"text": "a"}')), Message.assistant("done")]
        )
        agent = Agent(provider=provider, chat_history=history, tools=[echo_tool])
        agent.add_observer(recorder)

        await agent.chat_async("go")

        assert recorder.names.count("inference-start") == 2
        assert recorder.names.count("inference-stop") == 2
        assert recorder.names.index("tool-calling") < recorder.names.index("tool-called")

    @pytest.mark.asyncio
    async def test_round_limit(self, scripted_provider, history, echo_tool, make_tool_request):
        provider = scripted_provider(
            [
                make_tool_request(("c1", "echo", '{"text": "a"}'), request_id="r1"),
                make_tool_request(("c2", "echo", '{"text": "b"}'), request_id="r2"),
            ]
        )
        agent = Agent(provider=provider, chat_history=history, max_tool_rounds=1)
        agent.add_tool(echo_tool)

        with pytest.raises(ToolRoundLimitError):
            await agent.chat_async("loop")

        assert len(provider.calls) == 2

    def test_duplicate_tool_name_rejected(self, echo_tool):
        agent = Agent().add_tool(echo_tool)

        with pytest.raises(ConfigurationError):
            agent.add_tool(FunctionTool("echo", "again", lambda: None))


class TestChatFailures:
    @pytest.mark.asyncio
    async def test_missing_provider(self, history, recorder):
        agent = Agent(chat_history=history)
        agent.add_observer(recorder)

        with pytest.raises(ConfigurationError):
            await agent.chat_async("Hello")

        assert history.get_messages() == []
        assert recorder.names[-1] == "chat-stop"
        assert recorder.payloads("chat-stop")[0].response is None

    @pytest.mark.asyncio
    async def test_missing_history(self, scripted_provider):
        provider = scripted_provider([Message.assistant("x")])
        agent = Agent(provider=provider)

        with pytest.raises(ConfigurationError):
            await agent.chat_async("Hello")

        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_provider_error_is_wrapped_once(self, scripted_provider, history, recorder):
        cause = ProviderError("upstream down", provider="scripted", status_code=503)
        agent = Agent(provider=scripted_provider([cause]), chat_history=history)
        agent.add_observer(recorder)

        with pytest.raises(AgentError) as exc_info:
            await agent.chat_async("Hello")

        assert type(exc_info.value) is AgentError
        assert exc_info.value.__cause__ is cause
        error = recorder.payloads("error")[0]
        assert isinstance(error, ErrorEvent)
        assert error.critical is True
        assert recorder.names[-2:] == ["error", "chat-stop"]

    def test_sync_chat_raises_same_error(self, scripted_provider, history):
        cause = ProviderError("upstream down")
        agent = Agent(provider=scripted_provider([cause]), chat_history=history)

        with pytest.raises(AgentError) as exc_info:
            agent.chat("Hello")

        assert exc_info.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_final_answer_may_not_be_tool_request(self, scripted_provider, history):
        agent = Agent(provider=scripted_provider([Message.assistant("fine")]), chat_history=history)

        reply = await agent.chat_async([Message.user("a"), Message.user("b")])

        assert not isinstance(reply.content, ToolCallRequest)
        assert [m.text for m in history.get_messages()] == ["a", "b", "fine"]
