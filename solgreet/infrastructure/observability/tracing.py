"""OpenTelemetry spans around bootstrap steps and RPC calls.

Tracing is off until :func:`configure_tracing` is called (the CLI does so for
``--trace``). While it is off, :class:`trace_span` yields ``None`` and costs
nothing, so callers wrap their work unconditionally::

    with trace_span("ensure_program_deployed", url=url):
        ...

    @traced("bootstrap.run")
    def run(self, times: int = 1) -> list[int]:
        ...
"""

from __future__ import annotations

import functools
import os
from contextlib import AbstractContextManager
from contextvars import ContextVar
from typing import Any, Callable, TypeVar

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from .logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_SPAN_KINDS = {
    "internal": trace.SpanKind.INTERNAL,
    "client": trace.SpanKind.CLIENT,
}

_tracer: trace.Tracer | None = None

# trace/span ids of the innermost active span, for log correlation
_trace_context: ContextVar[dict[str, str]] = ContextVar("trace_context", default={})


def get_trace_context() -> dict[str, str]:
    return _trace_context.get()


def configure_tracing(
    *,
    service_name: str = "solgreet",
    enable: bool = True,
    console: bool | None = None,
    sample_rate: float = 1.0,
) -> bool:
    """Enable or disable tracing.

    Args:
        service_name: ``service.name`` resource attribute.
        enable: ``False`` turns every span into a no-op again.
        console: Print finished spans to stdout. Defaults to the
            ``OTEL_TRACES_CONSOLE`` environment variable.
        sample_rate: Fraction of traces to sample (0.0 to 1.0).

    Returns:
        Whether tracing is now enabled.
    """
    global _tracer

    if not enable:
        _tracer = None
        logger.debug("Tracing disabled")
        return False

    if console is None:
        console = os.environ.get("OTEL_TRACES_CONSOLE", "").lower() == "true"

    provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: service_name}),
        sampler=TraceIdRatioBased(sample_rate),
    )
    if console:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    _tracer = provider.get_tracer(service_name)
    logger.info("Tracing enabled for service '%s' (console=%s)", service_name, console)
    return True


class trace_span(AbstractContextManager):
    """Open a span named ``name``; ``None``-valued attributes are skipped."""

    def __init__(self, name: str, *, kind: str = "internal", **attributes: Any):
        self.name = name
        self.kind = _SPAN_KINDS.get(kind, trace.SpanKind.INTERNAL)
        self.attributes = attributes
        self._span_cm = None
        self._ctx_token = None

    def __enter__(self):
        if _tracer is None:
            return None
        self._span_cm = _tracer.start_as_current_span(self.name, kind=self.kind)
        span = self._span_cm.__enter__()
        for key, value in self.attributes.items():
            if value is not None:
                span.set_attribute(key, str(value))
        ctx = span.get_span_context()
        if ctx.is_valid:
            self._ctx_token = _trace_context.set(
                {
                    "trace_id": format(ctx.trace_id, "032x"),
                    "span_id": format(ctx.span_id, "016x"),
                }
            )
        return span

    def __exit__(self, exc_type, exc_value, traceback):
        if self._ctx_token is not None:
            _trace_context.reset(self._ctx_token)
            self._ctx_token = None
        if self._span_cm is not None:
            self._span_cm.__exit__(exc_type, exc_value, traceback)
            self._span_cm = None
        return False


def traced(name: str | None = None, *, kind: str = "internal") -> Callable[[F], F]:
    """Run the decorated function inside a span (named after it by default)."""

    def decorator(func: F) -> F:
        span_name = name or func.__name__

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with trace_span(span_name, kind=kind):
                return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def record_exception(exception: BaseException) -> None:
    """Mark the current span as failed with ``exception``."""
    if _tracer is None:
        return
    span = trace.get_current_span()
    if span.is_recording():
        span.record_exception(exception)
        span.set_status(trace.Status(trace.StatusCode.ERROR))
