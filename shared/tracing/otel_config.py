"""OpenTelemetry configuration for distributed tracing.

Spans are exported over OTLP/HTTP. Service operations are wrapped with
`trace_function`; exceptions listed as expected (domain errors that the API
turns into 4xx answers) are recorded on the span without marking it failed.
"""

import functools
import inspect
from typing import Any, Callable, Dict, Optional, Tuple, Type, TypeVar

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Span, Status, StatusCode

F = TypeVar("F", bound=Callable[..., Any])


def configure_tracing(
    service_name: str,
    otlp_endpoint: str = "http://localhost:4318/v1/traces",
    sampling_rate: float = 0.1,
    service_version: str = "1.0.0",
) -> TracerProvider:
    """Install a global tracer provider exporting to an OTLP collector.

    Child spans follow their parent's sampling decision; root spans are
    sampled at `sampling_rate`.
    """
    resource = Resource(
        attributes={
            "service.name": service_name,
            "service.namespace": "silent-money",
            "service.version": service_version,
        }
    )
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(sampling_rate)),
    )
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint)))
    trace.set_tracer_provider(provider)
    return provider


def _finish(span: Span, exc: Optional[BaseException], expected: Tuple[Type[BaseException], ...]) -> None:
    if exc is None:
        span.set_status(Status(StatusCode.OK))
        return
    span.record_exception(exc)
    if expected and isinstance(exc, expected):
        span.set_attribute("error.expected", True)
        return
    span.set_status(Status(StatusCode.ERROR, str(exc)))


def trace_function(
    span_name: Optional[str] = None,
    attributes: Optional[Dict[str, Any]] = None,
    expected: Tuple[Type[BaseException], ...] = (),
) -> Callable[[F], F]:
    """Run the decorated function (sync or async) inside a span.

    Args:
        span_name: Span name; defaults to the function's qualified name
        attributes: Static attributes set on every span
        expected: Exception types that do not mark the span as an error
    """

    def decorator(func: F) -> F:
        name = span_name or func.__qualname__
        tracer = trace.get_tracer(func.__module__)
        static = {"code.function": func.__qualname__, "code.namespace": func.__module__, **(attributes or {})}

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with tracer.start_as_current_span(
                    name, attributes=static, record_exception=False, set_status_on_exception=False
                ) as span:
                    try:
                        result = await func(*args, **kwargs)
                    except Exception as exc:
                        _finish(span, exc, expected)
                        raise
                    _finish(span, None, expected)
                    return result

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with tracer.start_as_current_span(
                name, attributes=static, record_exception=False, set_status_on_exception=False
            ) as span:
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    _finish(span, exc, expected)
                    raise
                _finish(span, None, expected)
                return result

        return sync_wrapper  # type: ignore

    return decorator
