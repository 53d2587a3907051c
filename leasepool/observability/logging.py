"""
Structured logging setup using structlog.

Modules log through ``logging.getLogger(__name__)`` with ``extra`` fields;
the stdlib records are rendered by structlog so every line also carries the
bound instance context, the trace ids and, once a lease is held, the
assignment name.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace

from leasepool.config import Settings, get_settings

if TYPE_CHECKING:
    from leasepool.lease.handle import AssignmentHandle

# Libraries that log every statement at INFO
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add trace_id and span_id of the current span, if one is recording."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


class AssignmentContext:
    """
    structlog processor that stamps the held assignment on each record.

    Reads the handle on every call, so the field appears as soon as the
    gate opens and disappears when the lease is lost or released.
    """

    def __init__(self, handle: "AssignmentHandle"):
        self._handle = handle

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        assignment_name = self._handle.assignment_name
        if assignment_name is not None:
            event_dict.setdefault("assignment_name", assignment_name)
        return event_dict


def setup_logging(
    settings: Settings | None = None,
    handle: "AssignmentHandle | None" = None,
) -> None:
    """
    Configure structured logging for the process.

    Args:
        settings: Optional settings. Uses cached settings if not provided.
        handle: Optional assignment handle whose lease is added to records.
    """
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]
    if handle is not None:
        shared_processors.append(AssignmentContext(handle))

    if settings.log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs: Any) -> None:
    """Bind key-value pairs to all subsequent log records of this context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()
