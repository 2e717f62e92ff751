"""
Structured logging configuration using structlog.

Console output in development, JSON lines everywhere else. Operations bind
their name (and whatever else identifies the call) into contextvars, so
store-level events logged deep inside a transition carry it too.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from stockflow.config.settings import Settings, get_settings

QUIET_LOGGERS = ("aiosqlite", "asyncio")


def app_context_processor(settings: Settings) -> Processor:
    """Stamp every event with the application name, version and environment."""
    context = {
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

    def add_app_context(
        logger: WrappedLogger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_app_context


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Overrides ``settings.log_level``
        json_output: Overrides the environment-based renderer choice
    """
    settings = get_settings()
    level = level or settings.log_level
    if json_output is None:
        json_output = settings.environment != "development"

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        app_context_processor(settings),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def operation_context(operation: str, **fields: Any) -> Iterator[None]:
    """Bind ``operation`` (and ``fields``) to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(operation=operation, **fields):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
