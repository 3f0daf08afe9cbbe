"""Observers for logging and metrics."""

from agentcore.observability.logging_observer import LoggingObserver
from agentcore.observability.metrics import MetricsObserver

__all__ = ["LoggingObserver", "MetricsObserver"]
