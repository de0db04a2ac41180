"""Observability and logging facades."""

from .logging import (
    configure_logging,
    current_log_context,
    get_logger,
    log_context,
)
from .tracing import (
    configure_tracing,
    get_trace_context,
    record_exception,
    trace_span,
    traced,
)

__all__ = [
    # Logging
    "configure_logging",
    "current_log_context",
    "get_logger",
    "log_context",
    # Tracing
    "configure_tracing",
    "get_trace_context",
    "record_exception",
    "trace_span",
    "traced",
]
