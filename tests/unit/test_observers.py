"""Unit tests for the observer bus."""

import gc

import pytest
from pydantic import BaseModel

from agentcore.domain.agent.agent import Agent
from agentcore.domain.agent.events import AgentEvent
from agentcore.domain.agent.observers import ObserverBus
from agentcore.domain.chat.types import Message
from agentcore.shared.exceptions import ConfigurationError


class Recorder:
    def __init__(self) -> None:
        self.events: list[str] = []

    def update(self, event_type, payload) -> None:
        self.events.append(event_type)


class Exploding:
    def update(self, event_type, payload) -> None:
        raise RuntimeError("observer bug")


class TestFiltering:
    def test_wildcard_receives_everything(self):
        bus = ObserverBus()
        recorder = Recorder()
        bus.add_observer(recorder)

        bus.notify("chat-start")
        bus.notify(AgentEvent.CHAT_STOP)

        assert recorder.events == ["chat-start", "chat-stop"]

    def test_filter_is_exact(self):
        bus = ObserverBus()
        recorder = Recorder()
        bus.add_observer(recorder, AgentEvent.ERROR)

        bus.notify("error")
        bus.notify("ERROR")
        bus.notify("chat-start")

        assert recorder.events == ["error"]

    def test_dispatch_follows_registration_order(self):
        bus = ObserverBus()
        order: list[str] = []

        class Named:
            def __init__(self, name: str) -> None:
                self.name = name

            def update(self, event_type, payload) -> None:
                order.append(self.name)

        first, second = Named("first"), Named("second")
        bus.add_observer(first)
        bus.add_observer(second)

        bus.notify("chat-start")

        assert order == ["first", "second"]


class TestIsolation:
    def test_failing_observer_does_not_stop_dispatch(self):
        bus = ObserverBus()
        exploding = Exploding()
        recorder = Recorder()
        bus.add_observer(exploding)
        bus.add_observer(recorder)

        bus.notify("chat-start")

        assert recorder.events == ["chat-start"]

    def test_failing_function_observer_is_isolated(self):
        bus = ObserverBus()
        recorder = Recorder()

        def on_event(event_type, payload):
            raise RuntimeError("observer bug")

        bus.add_observer(on_event)
        bus.add_observer(recorder)

        bus.notify("chat-start")

        assert recorder.events == ["chat-start"]


class TestAgentIsolation:
    """A raising observer never fails the operation that triggered it."""

    @pytest.mark.asyncio
    async def test_chat_survives_failing_observer(self, scripted_provider, history, recorder):
        exploding = Exploding()
        agent = Agent(provider=scripted_provider([Message.assistant("Hi")]), chat_history=history)
        agent.add_observer(exploding).add_observer(recorder)

        reply = await agent.chat_async("Hello")

        assert reply.text == "Hi"
        assert recorder.names[0] == "chat-start"
        assert recorder.names[-1] == "chat-stop"

    @pytest.mark.asyncio
    async def test_stream_survives_failing_observer(self, scripted_provider, history, recorder):
        exploding = Exploding()
        agent = Agent(provider=scripted_provider(chunks=["He", "llo"]), chat_history=history)
        agent.add_observer(exploding).add_observer(recorder)

        stream = agent.stream("Hello")
        chunks = [chunk async for chunk in stream]

        assert chunks == ["He", "llo"]
        assert stream.response.text == "Hello"
        assert recorder.names.count("stream-stop") == 1

    @pytest.mark.asyncio
    async def test_structured_survives_failing_observer(
        self, scripted_provider, history, recorder
    ):
        class City(BaseModel):
            name: str

        exploding = Exploding()
        provider = scripted_provider([Message.assistant('{"name": "Vienna"}')])
        agent = Agent(provider=provider, chat_history=history)
        agent.add_observer(exploding).add_observer(recorder)

        city = await agent.structured_async("Where?", City)

        assert city == City(name="Vienna")
        assert recorder.names.count("structured-stop") == 1

    def test_sync_chat_with_function_observer(self, scripted_provider, history):
        seen: list[str] = []

        def on_event(event_type, payload):
            seen.append(event_type)

        agent = Agent(provider=scripted_provider([Message.assistant("Hi")]), chat_history=history)
        agent.add_observer(on_event)

        try:
            assert agent.chat("Hello").text == "Hi"
        finally:
            agent.close()

        assert seen[0] == "chat-start"
        assert seen[-1] == "chat-stop"

    def test_non_observer_is_rejected(self):
        with pytest.raises(ConfigurationError):
            Agent().add_observer(object())


class TestWeakRegistration:
    def test_dropped_observer_is_pruned(self):
        bus = ObserverBus()
        recorder = Recorder()
        bus.add_observer(recorder)
        assert len(bus) == 1

        del recorder
        gc.collect()
        bus.notify("chat-start")

        assert len(bus) == 0

    def test_bound_method_registration(self):
        bus = ObserverBus()
        recorder = Recorder()
        bus.add_observer(recorder.update)

        bus.notify("chat-start")

        assert recorder.events == ["chat-start"]

    def test_remove_observer(self):
        bus = ObserverBus()
        recorder = Recorder()
        bus.add_observer(recorder)
        bus.add_observer(recorder, "error")

        bus.remove_observer(recorder)
        bus.notify("error")

        assert recorder.events == []

    def test_remove_all_observers(self):
        bus = ObserverBus()
        recorder = Recorder()
        bus.add_observer(recorder)

        bus.remove_all_observers()
        bus.notify("chat-start")

        assert recorder.events == []
