"""Structured logging configuration using structlog.

Every entry carries the service, app and environment names, the request
correlation ID when one is bound, and the OpenTelemetry trace and span IDs
when a span is recording. Credential fields are masked before rendering.
"""

import logging
import sys
from typing import Any, Callable, Dict, Iterable, Optional

import structlog
from structlog.types import EventDict, Processor

REDACTED = "***"

SENSITIVE_KEYS = frozenset({
    "password",
    "new_password",
    "current_password",
    "password_hash",
    "token",
    "access_token",
    "reset_token",
    "authorization",
    "secret_key",
})

# Libraries whose INFO output duplicates our own request logs
NOISY_LOGGERS = ("uvicorn.access", "botocore", "aiobotocore", "aioboto3", "urllib3")


def static_fields_processor(fields: Dict[str, str]) -> Callable[..., EventDict]:
    """Processor that adds fixed fields without overriding explicit ones."""

    def add_static_fields(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_static_fields


def redact_sensitive(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values, including inside one level of nested dicts."""
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS and value is not None:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: (REDACTED if str(k).lower() in SENSITIVE_KEYS and v is not None else v)
                for k, v in value.items()
            }
    return event_dict


def add_trace_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach trace_id and span_id of the active OpenTelemetry span."""
    from opentelemetry import trace

    span = trace.get_current_span()
    if span and span.is_recording():
        span_context = span.get_span_context()
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")

    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    service_name: Optional[str] = None,
    app_name: str = "silent-money",
    environment: str = "production",
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_logs: Render JSON lines; otherwise the coloured console renderer
        service_name: Service tag; defaults to app_name
        app_name: Application name stamped on every entry
        environment: Deployment environment stamped on every entry
        quiet_loggers: Third-party loggers raised to WARNING
    """
    level = getattr(logging, log_level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        static_fields_processor({
            "service": service_name or app_name,
            "app": app_name,
            "environment": environment,
        }),
        add_trace_context,
        redact_sensitive,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_request_context(**values: Any) -> None:
    """Start a fresh logging context for one request and bind values to it."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
