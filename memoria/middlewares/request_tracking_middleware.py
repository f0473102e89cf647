"""
In-flight request tracking for graceful shutdown.
"""
import asyncio
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from memoria.utils.prometheus_metrics import in_flight_requests

# Probes stay answerable during shutdown
EXCLUDED_PATHS = {"/health", "/health/liveness", "/health/readiness"}


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """
    Counts requests in progress so shutdown can wait for them.
    """

    def __init__(self, app):
        super().__init__(app)
        self._lock = asyncio.Lock()
        self._request_count = 0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        async with self._lock:
            self._request_count += 1
            in_flight_requests.set(self._request_count)

        try:
            return await call_next(request)
        finally:
            async with self._lock:
                self._request_count = max(self._request_count - 1, 0)
                in_flight_requests.set(self._request_count)

