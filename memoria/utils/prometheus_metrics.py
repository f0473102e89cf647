"""
Prometheus metrics.

- FastAPI: request count, latency (Instrumentator)
- Node/instance: app_info
- Stability: exceptions_total, db_errors_total
- HA: ready gauge (1=up, 0=shutting down), in_flight_requests
- Business: album/photo operations, user sync, searches, rate limiting
"""
import socket

from prometheus_client import REGISTRY, Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator

from memoria.config import get_settings

# --- Stability ---
exceptions_total = Counter(
    "memoria_exceptions_total",
    "Total unhandled exceptions",
    registry=REGISTRY,
)
db_errors_total = Counter(
    "memoria_db_errors_total",
    "Total database session/transaction errors",
    registry=REGISTRY,
)

# --- HA ---
ready = Gauge(
    "memoria_ready",
    "1 when the instance accepts traffic, 0 while shutting down",
    registry=REGISTRY,
)
in_flight_requests = Gauge(
    "memoria_in_flight_requests",
    "Requests currently being processed",
    registry=REGISTRY,
)

# --- Business ---
album_operations_total = Counter(
    "memoria_album_operations_total",
    "Album mutations by operation and result",
    ["operation", "result"],  # operation: create | update | delete; result: success | failure
    registry=REGISTRY,
)
photo_operations_total = Counter(
    "memoria_photo_operations_total",
    "Photo mutations by operation and result",
    ["operation", "result"],  # operation: add | update | delete | upload_url
    registry=REGISTRY,
)
cover_photo_changes_total = Counter(
    "memoria_cover_photo_changes_total",
    "Automatic cover photo changes",
    ["reason"],  # reason: first_photo | reassigned | cleared
    registry=REGISTRY,
)
user_sync_total = Counter(
    "memoria_user_sync_total",
    "Identity sync calls by result",
    ["result"],  # result: created | updated | failure
    registry=REGISTRY,
)
search_requests_total = Counter(
    "memoria_search_requests_total",
    "Full-scan search and explore requests",
    ["target"],  # target: albums | photos | explore
    registry=REGISTRY,
)

# --- Rate limiting ---
rate_limit_hits_total = Counter(
    "memoria_rate_limit_hits_total",
    "Requests rejected by the rate limiter",
    ["endpoint"],
    registry=REGISTRY,
)
rate_limit_requests_total = Counter(
    "memoria_rate_limit_requests_total",
    "Rate-limited endpoint requests by outcome",
    ["endpoint", "status"],  # status: blocked
    registry=REGISTRY,
)


def _node_identity() -> str:
    """Node/instance identifier: NODE_NAME setting or hostname."""
    settings = get_settings()
    if settings.node_name:
        return settings.node_name
    return socket.gethostname()


def setup_prometheus(app) -> None:
    """
    Register request instrumentation and expose /metrics.
    """
    settings = get_settings()

    app_info = Gauge(
        "memoria_app_info",
        "Application and node identity (labels only, value is 1)",
        ["node", "app", "version", "environment"],
        registry=REGISTRY,
    )
    app_info.labels(
        node=_node_identity(),
        app=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    ).set(1)

    # Concrete status codes (200, 201, 404, ...) instead of 2xx/4xx groups
    Instrumentator(should_group_status_codes=False).instrument(app).expose(
        app, endpoint="/metrics"
    )
