"""
Python logging setup for production.

Levels:
- INFO: important business events (user sync, album/photo changes)
- WARNING: client errors (bad token, ownership violations)
- ERROR: system errors, external service failures
- Personal data (email, username, ...) is kept out of the JSON context

Outputs:
- stdout: human readable text (journald)
- <LOG_DIR>/*.log: NDJSON for log shippers

Every record carries the request id and the instance address, so a
failure can be traced across instances.
"""
import contextvars
import json
import logging
import socket
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from memoria.config import get_settings

_logger = logging.getLogger("memoria")

# Fields never written to the JSON context
_SENSITIVE_FIELDS = frozenset({"email", "username", "password", "token", "secret", "authorization"})

# Request ID for the current request (async safe)
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def _get_instance_ip() -> str:
    """INSTANCE_IP setting, falling back to the hostname."""
    ip = (get_settings().instance_ip or "").strip()
    if ip:
        return ip
    return socket.gethostname()


INSTANCE_IP = _get_instance_ip()


def generate_request_id() -> str:
    """Short, readable request id."""
    return uuid.uuid4().hex[:12]


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the request id, generating one when None."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


class FlushingRotatingFileHandler(RotatingFileHandler):
    """Flush after every record so shippers see the latest line immediately."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()


# Standard LogRecord attributes (not copied into ctx)
_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "message", "asctime", "taskName",
    }
)


class JsonLinesFormatter(logging.Formatter):
    """
    NDJSON formatter.

    Fields:
    - ts: UTC timestamp
    - level: log level
    - instance: instance address
    - rid: request id
    - event: event type (lifecycle, request, auth, album, photo, user, storage, db)
    - msg: message
    - ctx: extra context (personal data removed)
    - exc: exception text
    """

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        msecs = int(record.msecs) % 1000
        payload = {
            "ts": dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{msecs:03d}Z",
            "level": record.levelname,
            "instance": INSTANCE_IP,
        }

        rid = get_request_id()
        if rid:
            payload["rid"] = rid

        if getattr(record, "event", None):
            payload["event"] = record.event

        payload["msg"] = record.getMessage()

        _skip_in_ctx = _STANDARD_ATTRS | {"event", "instance"}
        extra_ctx = {
            k: v for k, v in record.__dict__.items()
            if k not in _skip_in_ctx
            and k not in _SENSITIVE_FIELDS
            and v is not None
        }
        if extra_ctx:
            payload["ctx"] = extra_ctx

        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging() -> None:
    """
    Configure logging.

    - stdout: text format
    - stderr: ERROR and above
    - <LOG_DIR>/app.log: INFO and above as NDJSON
    - <LOG_DIR>/error.log: ERROR and above as NDJSON
    - Noisy third-party loggers are raised to WARNING
    """
    settings = get_settings()
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    root_logger.handlers.clear()

    text_formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.INFO)
    stdout_handler.setFormatter(text_formatter)
    root_logger.addHandler(stdout_handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(text_formatter)
    root_logger.addHandler(stderr_handler)

    log_dir = (settings.log_dir or "").strip()
    if log_dir:
        json_formatter = JsonLinesFormatter()
        try:
            path = Path(log_dir)
            path.mkdir(parents=True, exist_ok=True)

            file_handler = FlushingRotatingFileHandler(
                path / "app.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(json_formatter)
            root_logger.addHandler(file_handler)

            error_handler = FlushingRotatingFileHandler(
                path / "error.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(json_formatter)
            root_logger.addHandler(error_handler)
        except OSError as e:
            root_logger.warning("File logging disabled: %s", e)

    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpx",
        "httpcore",
        "asyncio",
        "botocore",
        "boto3",
        "sqlalchemy",
        "sqlalchemy.engine",
        "sqlalchemy.pool",
        "aiosqlite",
    ):
        logging.getLogger(name).setLevel(logging.WARNING)


def _log(level: int, message: str, exc_info: bool = False, **context: Any) -> None:
    _logger.log(level, message, exc_info=exc_info, extra=context)


def log_info(message: str, **context: Any) -> None:
    """Log an INFO event with structured context."""
    _log(logging.INFO, message, **context)


def log_warning(message: str, **context: Any) -> None:
    """Log a WARNING event with structured context."""
    _log(logging.WARNING, message, **context)


def log_error(message: str, exc_info: bool = False, **context: Any) -> None:
    """Log an ERROR event with structured context."""
    _log(logging.ERROR, message, exc_info=exc_info, **context)
