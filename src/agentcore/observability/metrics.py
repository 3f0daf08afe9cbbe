"""Prometheus metrics for agent events."""

from typing import Any

from prometheus_client import Counter, Histogram

from agentcore.domain.agent.events import ErrorEvent, InferenceStopEvent, ToolCalledEvent

EVENT_COUNT = Counter(
    "agent_events_total",
    "Total agent lifecycle events",
    ["event_type"],
)
ERROR_COUNT = Counter(
    "agent_errors_total",
    "Total agent errors",
    ["critical", "error_type"],
)
INFERENCE_LATENCY = Histogram(
    "agent_inference_duration_seconds",
    "Model call duration in seconds",
)
TOOL_CALL_COUNT = Counter(
    "agent_tool_calls_total",
    "Total tool calls",
    ["tool_name", "status"],
)
TOOL_BATCH_LATENCY = Histogram(
    "agent_tool_batch_duration_seconds",
    "Duration of one tool call round in seconds",
)


class MetricsObserver:
    """Records agent events in the default Prometheus registry."""

    def update(self, event_type: str, payload: Any) -> None:
        EVENT_COUNT.labels(event_type=event_type).inc()

        if isinstance(payload, ErrorEvent):
            ERROR_COUNT.labels(
                critical=str(payload.critical).lower(),
                error_type=type(payload.exception).__name__,
            ).inc()
        elif isinstance(payload, InferenceStopEvent):
            INFERENCE_LATENCY.observe(payload.duration_ms / 1000)
        elif isinstance(payload, ToolCalledEvent):
            TOOL_BATCH_LATENCY.observe(payload.duration_ms / 1000)
            for call in payload.request.calls:
                status = "error" if call.id in payload.errors else "ok"
                TOOL_CALL_COUNT.labels(tool_name=call.name, status=status).inc()
