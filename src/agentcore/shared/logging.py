"""Structured logging configuration."""

import logging
import sys
from typing import TYPE_CHECKING, Any, cast

import structlog

from agentcore.config import get_settings

if TYPE_CHECKING:
    from agentcore.config import Settings


def setup_logging(settings: "Settings | None" = None) -> None:
    """Configure structured logging for the application."""
    settings = settings or get_settings()

    # Determine log level
    log_level = logging.DEBUG if settings.app_debug else logging.INFO

    # Configure structlog processors
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # SDK transports log every request at INFO
    for logger_name in ["httpx", "httpcore", "anthropic", "openai"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
