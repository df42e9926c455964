"""JSON log lines and per-request correlation ids for the bookstore backend.

``configure_logging()`` runs once at import of ``app.main``; afterwards every
record from ``app.*`` and ``bookstore_catalog.*`` is written to stdout as one
JSON object.

A correlation id lives in two places while a request is handled:

* a ``ContextVar``, so log records emitted anywhere below the middleware
  pick it up without being passed the request;
* ``request.state.correlation_id``, so exception handlers that Starlette
  runs outside the middleware (the catch-all 500 handler) can still report
  it after the context has been reset.

Use ``request_correlation_id(request)`` in handlers; it checks both.
"""

import json
import logging
import time
import uuid
from contextvars import ContextVar, Token
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from bookstore_catalog.events import LogEvent

_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "taskName",
}

_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine")


def get_correlation_id() -> str:
    """Correlation id bound to the current context, or ""."""
    return _correlation_id_var.get()


def bind_correlation_id(correlation_id: str) -> Token:
    return _correlation_id_var.set(correlation_id)


def reset_correlation_id(token: Token) -> None:
    _correlation_id_var.reset(token)


def request_correlation_id(request: Request) -> str:
    """Correlation id assigned to ``request`` by the middleware.

    Falls back to the context variable for requests that never passed
    through ``CorrelationIdMiddleware`` (e.g. a bare test app).
    """
    return getattr(request.state, "correlation_id", "") or get_correlation_id()


class _JsonFormatter(logging.Formatter):
    """One JSON object per record: level, logger, message, correlation id, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            payload["correlation_id"] = correlation_id

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            # LogEvent members serialise as their string value
            payload[key] = value.value if isinstance(value, LogEvent) else value

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    """Route the root logger to a single stdout handler using ``_JsonFormatter``."""
    level_name = level.upper()

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("JSON logging configured", extra={"log_level": level_name})


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Assign each request a correlation id and echo it on the response.

    An incoming ``header_name`` value is reused as-is; otherwise a uuid4 is
    generated. One access record (``request_completed`` or
    ``request_failed``) is logged per request.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Correlation-ID") -> None:
        super().__init__(app)
        self.header_name = header_name
        self._access_log = logging.getLogger("app.access")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(self.header_name, "").strip() or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        token = bind_correlation_id(correlation_id)
        started = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            self._log_access(request, correlation_id, 500, started, LogEvent.REQUEST_FAILED)
            raise
        finally:
            reset_correlation_id(token)

        response.headers[self.header_name] = correlation_id
        self._log_access(request, correlation_id, response.status_code, started, LogEvent.REQUEST_COMPLETED)
        return response

    def _log_access(
        self,
        request: Request,
        correlation_id: str,
        status_code: int,
        started: float,
        event: LogEvent,
    ) -> None:
        self._access_log.log(
            logging.ERROR if status_code >= 500 else logging.INFO,
            "%s %s %s",
            request.method,
            request.url.path,
            status_code,
            extra={
                "event": event,
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
