"""Structured logging configuration using structlog.

Every module logs through ``logging.getLogger(__name__)``; structlog's
``ProcessorFormatter`` renders those stdlib records together with any
context bound via contextvars (trace id, acting user, todo event).
"""

import logging
import sys
from contextlib import contextmanager

import structlog

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        log_level: Logging level string (debug/info/warning/error).
        json_output: JSON lines when True, colored console output otherwise.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    shared = _shared_processors()

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, user_id: str | None = None) -> None:
    """Bind request-scoped variables to the current async context."""
    ctx = {"trace_id": trace_id}
    if user_id:
        ctx["user_id"] = user_id
    structlog.contextvars.bind_contextvars(**ctx)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


@contextmanager
def todo_event_context(event: str, target_type: str, target_key: str | None):
    """Tag every log line emitted while handling one dispatcher event."""
    with structlog.contextvars.bound_contextvars(
        todo_event=event, target_type=target_type, target_key=target_key
    ):
        yield
