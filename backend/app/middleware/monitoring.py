"""Monitoring and observability middleware"""
import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

from app.utils.logger import logger


# ===== Prometheus Metrics =====

# Request metrics
http_requests_total = Counter(
    "globetrotter_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "globetrotter_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"]
)

# Error metrics
http_errors_total = Counter(
    "globetrotter_http_errors_total",
    "Total HTTP errors",
    ["method", "endpoint", "status"]
)

# Auth metrics
authentication_failures_total = Counter(
    "globetrotter_authentication_failures_total",
    "Total rejected access tokens at the gateway",
    ["reason"]  # NO_TOKEN, INVALID_TOKEN, TOKEN_EXPIRED, TOKEN_REVOKED, INVALID_TOKEN_TYPE
)

tokens_issued_total = Counter(
    "globetrotter_tokens_issued_total",
    "Total tokens issued",
    ["type"]  # access, refresh
)

sweeper_rows_purged_total = Counter(
    "globetrotter_sweeper_rows_purged_total",
    "Expired rows removed by the retention sweeper",
    ["table"]
)


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Middleware for monitoring and metrics collection"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        method = request.method
        endpoint = request.url.path

        # Add request ID for tracing
        request_id = request.headers.get("x-request-id", f"req_{int(time.time() * 1000)}")
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            http_errors_total.labels(method=method, endpoint=endpoint, status=500).inc()
            logger.error(
                f"Request failed: {method} {endpoint}",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": endpoint,
                    "duration": duration,
                    "error": str(e)
                },
                exc_info=True
            )
            raise

        status = response.status_code
        duration = time.time() - start_time

        # Label by route template so /auth/sessions/{session_id} stays one series
        route = request.scope.get("route")
        if route is not None and getattr(route, "path", None):
            endpoint = route.path

        http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

        # Log slow requests
        if duration > 1.0:
            logger.warning(
                f"Slow request detected: {method} {endpoint}",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": endpoint,
                    "duration": duration,
                    "status": status
                }
            )

        if status >= 400:
            http_errors_total.labels(method=method, endpoint=endpoint, status=status).inc()

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


def record_auth_failure(reason: str):
    """Record a rejected access token"""
    authentication_failures_total.labels(reason=reason).inc()


def record_token_issued(token_type: str):
    tokens_issued_total.labels(type=token_type).inc()


def record_sweep(table: str, count: int):
    if count:
        sweeper_rows_purged_total.labels(table=table).inc(count)
