"""Observer that writes every agent event to the structured log."""

from dataclasses import fields, is_dataclass
from typing import Any

import structlog
from pydantic_core import to_jsonable_python

from agentcore.domain.agent.events import AgentEvent, ErrorEvent
from agentcore.shared.logging import get_logger


def _serialize_payload(payload: Any) -> Any:
    if payload is None:
        return None
    if is_dataclass(payload) and not isinstance(payload, type):
        data = {f.name: getattr(payload, f.name) for f in fields(payload)}
        return to_jsonable_python(data, fallback=repr)
    return to_jsonable_python(payload, fallback=repr)


class LoggingObserver:
    """Logs agent events.

    Error events are logged at error level when critical and at warning level
    otherwise; all other events at info level.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self.logger = logger or get_logger("agentcore.events")

    def update(self, event_type: str, payload: Any) -> None:
        if event_type == AgentEvent.ERROR.value and isinstance(payload, ErrorEvent):
            log = self.logger.error if payload.critical else self.logger.warning
            log(
                "agent_error",
                event_type=event_type,
                critical=payload.critical,
                error=payload.message,
                error_type=type(payload.exception).__name__,
                context=to_jsonable_python(payload.context, fallback=repr),
            )
            return

        self.logger.info(
            "agent_event",
            event_type=event_type,
            payload=_serialize_payload(payload),
        )
