"""Centralized logging configuration using structlog.

This module provides consistent, structured logging across the service with:
- JSON output for production (LOG_FORMAT=json)
- Colored console output for local development (default)
- OpenTelemetry trace/span ID injection for correlation
- stdlib ``extra={...}`` fields rendered as structured keys

Usage:
    from core import get_logger
    logger = get_logger(__name__)
    logger.info("redirect.served", path="/hi", status_code=307)
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, Processor

from core.observability import is_telemetry_enabled


def _add_open_telemetry_spans(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add OpenTelemetry trace and span IDs to log entries for correlation."""
    if not is_telemetry_enabled():
        return event_dict

    try:
        from opentelemetry import trace

        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            if ctx.is_valid:
                event_dict["trace_id"] = format(ctx.trace_id, "032x")
                event_dict["span_id"] = format(ctx.span_id, "016x")
    except Exception:
        # Don't let telemetry errors break logging
        pass

    return event_dict


def _get_log_level() -> int:
    """Get log level from environment, defaulting to INFO."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _is_json_format() -> bool:
    """Determine if JSON output is enabled (production mode)."""
    log_format = os.environ.get("LOG_FORMAT", "").lower()
    if log_format == "json":
        return True
    if log_format == "console":
        return False
    return bool(os.getenv("APPLICATIONINSIGHTS_CONNECTION_STRING"))


def configure_logging() -> None:
    """Configure structlog and stdlib logging. Call once at startup."""
    log_level = _get_log_level()
    use_json = _is_json_format()

    # Shared processors for both structlog and stdlib logs
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.stdlib.ExtraAdder(),
        _add_open_telemetry_spans,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if use_json:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=shared_processors
        + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdlib records (uvicorn included) share the pre-chain
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    # Configure root logger, preserving OTel LoggingHandler if present
    root_logger = logging.getLogger()

    otel_handlers = [
        h for h in root_logger.handlers if "LoggingHandler" in type(h).__name__
    ]
    root_logger.handlers.clear()

    for h in otel_handlers:
        root_logger.addHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # redirect.served already covers each redirect
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        A structlog BoundLogger that supports structured key-value logging.
    """
    return structlog.stdlib.get_logger(name)
