"""
Structured request logging middleware.
"""
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from memoria.utils.client_ip import get_client_ip
from memoria.utils.logger import log_error, log_warning, set_request_id

# Slow response threshold (ms)
SLOW_REQUEST_THRESHOLD_MS = 3000

REQUEST_ID_HEADER = "X-Request-ID"

# Not logged and no request id
EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc", "/metrics", "/favicon.ico"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Request id propagation and request logging.

    Levels:
    - 5xx responses -> ERROR
    - 4xx responses -> WARNING
    - responses slower than SLOW_REQUEST_THRESHOLD_MS -> WARNING
    - successful responses are not logged
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        # Client supplied id or a fresh one
        rid = set_request_id(request.headers.get(REQUEST_ID_HEADER))

        client_ip = get_client_ip(request)
        user_agent = request.headers.get("user-agent")

        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            log_error(
                f"Request exception: {e}",
                error_type=type(e).__name__,
                http_method=request.method,
                http_path=request.url.path,
                duration_ms=duration_ms,
                client_ip=client_ip,
                user_agent=user_agent,
                event="request",
                exc_info=True,
            )
            # Re-raised for the global exception handler
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = rid
        status_code = response.status_code

        if status_code >= 500:
            log_error(
                "Request error - Server error occurred",
                error_code=f"HTTP_{status_code}",
                http_method=request.method,
                http_path=request.url.path,
                http_status=status_code,
                duration_ms=duration_ms,
                client_ip=client_ip,
                user_agent=user_agent,
                event="request",
            )
        elif status_code >= 400:
            log_warning(
                "Request failed - Client error",
                http_method=request.method,
                http_path=request.url.path,
                http_status=status_code,
                duration_ms=duration_ms,
                client_ip=client_ip,
                event="request",
            )
        elif duration_ms >= SLOW_REQUEST_THRESHOLD_MS:
            log_warning(
                "Slow request detected",
                http_method=request.method,
                http_path=request.url.path,
                http_status=status_code,
                duration_ms=duration_ms,
                event="request",
                performance_issue=True,
            )

        return response
