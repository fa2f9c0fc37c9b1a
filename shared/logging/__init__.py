"""Structured logging configured once at startup; request context via contextvars."""

from .structured_logger import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    redact_sensitive,
)

__all__ = [
    "bind_request_context",
    "clear_request_context",
    "configure_logging",
    "redact_sensitive",
]
