"""
Request logging and HTTP metrics.

Every request gets a correlation ID (taken from X-Correlation-ID or
generated), bound to the structlog context for the lifetime of the
request and echoed on the response.
"""

import time
import uuid
import structlog
from fastapi import Request
from prometheus_client import Counter, Gauge, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

from shared.logging import bind_request_context, clear_request_context

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
QUIET_PATHS = ("/health", "/ready", "/metrics")

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"]
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method"]
)


def endpoint_label(request: Request) -> str:
    """Route template when matched, so path parameters do not explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and metrics."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        method = request.method
        path = request.url.path
        quiet = path.startswith(QUIET_PATHS)

        bind_request_context(correlation_id=correlation_id)

        http_requests_in_progress.labels(method=method).inc()
        start_time = time.perf_counter()

        if not quiet:
            logger.info(
                "request_started",
                method=method,
                path=path,
                client_ip=request.client.host if request.client else "unknown"
            )

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            endpoint = endpoint_label(request)

            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

            if not quiet:
                logger.info(
                    "request_completed",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                    duration=f"{duration:.3f}s"
                )

            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error(
                "request_failed",
                method=method,
                path=path,
                error=str(e),
                duration=f"{duration:.3f}s",
                exc_info=True
            )
            raise

        finally:
            http_requests_in_progress.labels(method=method).dec()
            clear_request_context()
