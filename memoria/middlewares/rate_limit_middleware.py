"""
Rate limiting using slowapi.
Applied to the endpoints that scan whole tables (search, explore).
"""
import logging
from typing import Callable

from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from memoria.config import get_settings
from memoria.utils.client_ip import get_client_ip
from memoria.utils.prometheus_metrics import (
    rate_limit_hits_total,
    rate_limit_requests_total,
)

logger = logging.getLogger("memoria.rate_limit")
settings = get_settings()


def get_client_identifier(request: Request) -> str:
    """Rate limiting key: originating client IP."""
    return get_client_ip(request) or "unknown"


# In-memory storage: limits are per instance
limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"] if settings.rate_limit_enabled else [],
    storage_uri="memory://",
    enabled=settings.rate_limit_enabled,
)


def setup_rate_limit_exception_handler(app):
    """
    Register the limiter and the handler for exceeded limits.
    """
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        endpoint = request.url.path

        rate_limit_hits_total.labels(endpoint=endpoint).inc()
        rate_limit_requests_total.labels(endpoint=endpoint, status="blocked").inc()

        logger.warning(
            "Rate limit exceeded",
            extra={
                "event": "rate_limit",
                "client_id": get_client_identifier(request),
                "endpoint": endpoint,
                "limit": getattr(exc, "detail", "unknown"),
            },
        )

        return _rate_limit_exceeded_handler(request, exc)


def get_rate_limit_decorator(limit: str):
    """
    Build a rate limit decorator.

    Args:
        limit: Rate limit string (e.g. "30/minute")

    Returns:
        slowapi decorator, or a no-op when rate limiting is disabled
    """
    if not settings.rate_limit_enabled:
        def noop_decorator(func: Callable) -> Callable:
            return func
        return noop_decorator

    return limiter.limit(limit)


def search_rate_limit():
    """Decorator for full-scan endpoints."""
    return get_rate_limit_decorator(f"{settings.rate_limit_search_per_minute}/minute")
