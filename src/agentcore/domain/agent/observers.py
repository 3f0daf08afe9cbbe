"""Observer bus with weakly held registrations.

Registering an observer never keeps it alive: once the caller drops its last
reference the registration is pruned on the next notification. Observers are
isolated from each other and from the agent, so a failing observer is logged
and skipped.
"""

import weakref
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from agentcore.shared.exceptions import ConfigurationError, ObserverError
from agentcore.shared.logging import get_logger

logger = get_logger(__name__)

ALL_EVENTS = "*"


@dataclass
class ObserverRegistration:
    ref: Callable[[], Any]
    event_filter: str

    def resolve(self) -> Callable[[str, Any], None] | None:
        target = self.ref()
        if target is None:
            return None
        if isinstance(self.ref, weakref.WeakMethod):
            return target
        return getattr(target, "update", target)

    def matches(self, event_type: str) -> bool:
        return self.event_filter == ALL_EVENTS or self.event_filter == event_type


def _event_name(event: str | Enum) -> str:
    return event.value if isinstance(event, Enum) else event


def _make_ref(observer: Any) -> Callable[[], Any]:
    # Bound methods die immediately under a plain weakref
    if hasattr(observer, "__self__") and hasattr(observer, "__func__"):
        return weakref.WeakMethod(observer)
    return weakref.ref(observer)


class ObserverBus:
    """Publish/subscribe channel for agent lifecycle events."""

    def __init__(self) -> None:
        self._registrations: list[ObserverRegistration] = []

    def add_observer(self, observer: Any, event_filter: str | Enum = ALL_EVENTS) -> None:
        """Register an observer for one event name or for all events ("*").

        Args:
            observer: Object with ``update(event_type, payload)``, or a function
                or bound method taking the same arguments
            event_filter: Event name to match exactly, "*" for every event

        Raises:
            ConfigurationError: If ``observer`` has no ``update`` and is not callable
        """
        if not (callable(getattr(observer, "update", None)) or callable(observer)):
            raise ConfigurationError(
                f"Observer {observer!r} must define update(event_type, payload) or be callable"
            )
        self._prune()
        self._registrations.append(
            ObserverRegistration(ref=_make_ref(observer), event_filter=_event_name(event_filter))
        )

    def remove_observer(self, observer: Any) -> None:
        """Remove every registration of ``observer``."""
        self._registrations = [
            registration
            for registration in self._registrations
            if registration.ref() is not None and not self._is_same(registration, observer)
        ]

    def remove_all_observers(self) -> None:
        self._registrations.clear()

    def notify(self, event_type: str | Enum, payload: Any = None) -> None:
        """Dispatch an event to all live, matching observers in registration order."""
        name = _event_name(event_type)
        self._prune()
        for registration in list(self._registrations):
            if not registration.matches(name):
                continue
            try:
                callback = registration.resolve()
                if callback is None:
                    continue
                callback(name, payload)
            except Exception as exc:
                error = ObserverError(registration.ref(), name, str(exc))
                logger.warning("observer_failed", error=error.message, event_type=name)

    def __len__(self) -> int:
        self._prune()
        return len(self._registrations)

    def _prune(self) -> None:
        self._registrations = [r for r in self._registrations if r.ref() is not None]

    @staticmethod
    def _is_same(registration: ObserverRegistration, observer: Any) -> bool:
        target = registration.ref()
        if isinstance(registration.ref, weakref.WeakMethod):
            return target == observer
        return target is observer
