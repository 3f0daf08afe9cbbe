"""Tool executor for the agent.

Runs every call of a ToolCallRequest against the registered tools and turns
each outcome into a ToolCallResult. Failures never abort the round: a missing
tool or a raising tool becomes an error string the model can read, plus a
non-critical error event on the observer bus.
"""

import asyncio
import copy
import json
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from pydantic_core import to_json

from agentcore.domain.agent.events import AgentEvent, ErrorEvent, ToolCalledEvent, ToolCallingEvent
from agentcore.domain.agent.observers import ObserverBus
from agentcore.domain.chat.types import ToolCall, ToolCallRequest, ToolCallResult
from agentcore.domain.tools.base import Tool
from agentcore.shared.context import (
    ToolCallContext,
    reset_tool_call_context,
    set_tool_call_context,
)
from agentcore.shared.exceptions import ToolExecutionError, ToolResolutionError
from agentcore.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ToolExecution:
    """Result of executing a tool."""

    call_id: str
    tool_name: str
    tool_input: dict[str, Any]
    result: str
    error: str | None = None
    duration_ms: float = 0.0

    def to_result(self) -> ToolCallResult:
        return ToolCallResult(
            tool_call_id=self.call_id,
            tool_name=self.tool_name,
            content=self.result,
        )


def serialize_tool_result(value: Any) -> str:
    """Render a tool's return value as the text the model receives."""
    if isinstance(value, str):
        return value
    return to_json(value, fallback=str).decode()


def _parse_arguments(arguments: str) -> dict[str, Any]:
    if not arguments.strip():
        return {}
    parsed = json.loads(arguments)
    if not isinstance(parsed, dict):
        raise ValueError(f"tool arguments must be a JSON object, got {type(parsed).__name__}")
    return parsed


class ToolExecutor:
    """Executes the tool calls of one round, preserving call order."""

    def __init__(self, observers: ObserverBus, max_concurrency: int = 1):
        """Initialize the tool executor.

        Args:
            observers: Bus receiving tool-calling, tool-called and error events
            max_concurrency: Calls of one round run concurrently when above 1
        """
        self.observers = observers
        self.max_concurrency = max(1, max_concurrency)

    async def execute(
        self, request: ToolCallRequest, tools: Sequence[Tool]
    ) -> list[ToolCallResult]:
        """Execute all calls of ``request``.

        Args:
            request: The model's tool call request
            tools: Snapshot of the registered tools

        Returns:
            One result per call, in the order of ``request.calls``
        """
        self.observers.notify(
            AgentEvent.TOOL_CALLING,
            ToolCallingEvent(request=request, tool_names=[call.name for call in request.calls]),
        )
        start_time = time.monotonic()

        if self.max_concurrency > 1 and len(request.calls) > 1:
            executions = await self._execute_concurrently(request.calls, tools)
        else:
            executions = [await self.execute_call(call, tools) for call in request.calls]

        results = [execution.to_result() for execution in executions]
        duration_ms = (time.monotonic() - start_time) * 1000
        self.observers.notify(
            AgentEvent.TOOL_CALLED,
            ToolCalledEvent(
                request=request,
                results=results,
                duration_ms=duration_ms,
                errors={e.call_id: e.error for e in executions if e.error is not None},
            ),
        )
        return results

    async def _execute_concurrently(
        self, calls: Sequence[ToolCall], tools: Sequence[Tool]
    ) -> list[ToolExecution]:
        semaphore = asyncio.Semaphore(min(self.max_concurrency, len(calls)))

        async def _execute(call: ToolCall) -> ToolExecution:
            async with semaphore:
                return await self.execute_call(call, tools, isolate=True)

        # gather keeps the order of its arguments
        return list(await asyncio.gather(*(_execute(call) for call in calls)))

    async def execute_call(
        self, call: ToolCall, tools: Sequence[Tool], isolate: bool = False
    ) -> ToolExecution:
        """Execute a single tool call.

        Args:
            call: The call to run
            tools: Registered tools, searched by exact name
            isolate: Run on a shallow copy so concurrent calls of the same
                tool do not share inputs and result

        Returns:
            ToolExecution whose ``result`` is the tool output or an error message
        """
        tool_name = call.function.name
        tool = next((t for t in tools if t.name == tool_name), None)

        if tool is None:
            resolution_error = ToolResolutionError(tool_name)
            logger.warning("tool_not_found", tool_name=tool_name, call_id=call.id)
            self.observers.notify(
                AgentEvent.ERROR,
                ErrorEvent(
                    exception=resolution_error,
                    critical=False,
                    message=resolution_error.message,
                    context={"tool_call_id": call.id, "tool_name": tool_name},
                ),
            )
            return ToolExecution(
                call_id=call.id,
                tool_name=tool_name,
                tool_input={},
                result=resolution_error.message,
                error=resolution_error.message,
            )

        if isolate:
            tool = copy.copy(tool)

        tool_input: dict[str, Any] = {}
        start_time = time.monotonic()
        token = set_tool_call_context(ToolCallContext(call_id=call.id, tool_name=tool_name))
        try:
            tool_input = _parse_arguments(call.function.arguments)
            tool.set_call_id(call.id)
            tool.set_inputs(tool_input)
            await tool.execute_callable()
            result = serialize_tool_result(tool.result)
        except Exception as e:
            execution_error = ToolExecutionError(tool_name, str(e))
            logger.warning(
                "tool_execution_failed",
                tool_name=tool_name,
                call_id=call.id,
                error=str(e),
            )
            self.observers.notify(
                AgentEvent.ERROR,
                ErrorEvent(
                    exception=execution_error,
                    critical=False,
                    message=execution_error.message,
                    context={"tool_call_id": call.id, "tool_name": tool_name, "cause": e},
                ),
            )
            return ToolExecution(
                call_id=call.id,
                tool_name=tool_name,
                tool_input=tool_input,
                result=execution_error.message,
                error=str(e),
                duration_ms=(time.monotonic() - start_time) * 1000,
            )
        finally:
            reset_tool_call_context(token)

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.debug(
            "tool_executed",
            tool_name=tool_name,
            call_id=call.id,
            latency_ms=round(duration_ms, 2),
        )
        return ToolExecution(
            call_id=call.id,
            tool_name=tool_name,
            tool_input=tool_input,
            result=result,
            duration_ms=duration_ms,
        )
