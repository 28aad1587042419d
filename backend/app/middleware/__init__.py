"""Middleware modules for production-ready features"""
from app.middleware.monitoring import (
    MonitoringMiddleware,
    record_auth_failure,
    record_sweep,
    record_token_issued,
)
from app.middleware.rate_limit import auth_limit, get_rate_limit, limiter

__all__ = [
    "MonitoringMiddleware",
    "record_auth_failure",
    "record_sweep",
    "record_token_issued",
    "auth_limit",
    "limiter",
    "get_rate_limit"
]
