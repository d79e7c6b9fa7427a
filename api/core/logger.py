"""Structured logging for the render gateway (structlog over stdlib logging).

Output is JSON lines when LOG_FORMAT=json and a colored console otherwise.
LOG_LEVEL picks the threshold. Every line carries the request context bound
by RequestContextMiddleware, plus trace/span IDs while an OpenTelemetry span
is recording.

Usage:
    from core import get_logger
    logger = get_logger(__name__)
    logger.info("qr.rendered", format="svg", size=150)
"""

import logging
import os
import sys

import structlog
from opentelemetry import trace
from structlog.types import EventDict, Processor

bind_contextvars = structlog.contextvars.bind_contextvars
clear_contextvars = structlog.contextvars.clear_contextvars

# uvicorn attaches its own handlers to these; ours should format them instead
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

# Per-request chatter that only matters when something is wrong
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "fontTools")


def _add_open_telemetry_spans(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp trace_id/span_id from the current span, if one is recording."""
    span = trace.get_current_span()
    if not span.is_recording():
        return event_dict

    ctx = span.get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _level_from_env() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _pre_chain() -> list[Processor]:
    """Processors applied to structlog events and foreign stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _add_open_telemetry_spans,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer() -> Processor:
    if os.environ.get("LOG_FORMAT", "").lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True, exception_formatter=structlog.dev.plain_traceback
    )


def _install_root_handler(formatter: logging.Formatter, level: int) -> None:
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _UVICORN_LOGGERS:
        forwarded = logging.getLogger(name)
        forwarded.handlers.clear()
        forwarded.propagate = True

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging() -> None:
    """Configure structlog and the stdlib root logger. Safe to call again."""
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            _renderer(),
        ],
    )
    _install_root_handler(formatter, _level_from_env())


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Example:
        logger = get_logger(__name__)
        logger.warning("ratelimit.exceeded", identity="1.2.3.4", path="/chart")
    """
    return structlog.stdlib.get_logger(name)
