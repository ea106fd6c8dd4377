"""Middleware for tracking Prometheus metrics."""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import time
from monitoring import (
    http_requests_total,
    http_request_duration_seconds,
    http_request_errors_total
)


def _endpoint_label(request: Request) -> str:
    # Route template ("/api/events/{event_id}/tickets") keeps label cardinality bounded
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP request metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        method = request.method

        try:
            response = await call_next(request)
        except Exception as e:
            http_request_errors_total.labels(
                method=method,
                endpoint=_endpoint_label(request),
                error_type=type(e).__name__
            ).inc()
            raise

        endpoint = _endpoint_label(request)
        status_code = response.status_code
        http_requests_total.labels(method=method, endpoint=endpoint, status=status_code).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)

        if status_code >= 400:
            http_request_errors_total.labels(
                method=method,
                endpoint=endpoint,
                error_type=f"status_{status_code}"
            ).inc()

        return response
