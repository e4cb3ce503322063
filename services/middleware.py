"""Request correlation for multi-store operations.

A single wipe or upload touches the metadata store and the vector index,
and each layer logs on its own logger.  :class:`RequestContextMiddleware`
binds one correlation id per HTTP request to :data:`request_id_var`;
:class:`RequestIdLogFilter` stamps it on every log record emitted while
the request is being served, so the lines of a partial failure can be
grouped after the fact.  Error bodies carry the same id (see ``main``).
"""

from __future__ import annotations

import contextvars
import logging
import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

NO_REQUEST = "-"

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "lifecycle_request_id", default=None,
)

_MUTATING_METHODS = frozenset({"POST", "PATCH", "PUT", "DELETE"})
_MAX_ID_LENGTH = 64


def current_request_id() -> str:
    return request_id_var.get() or NO_REQUEST


def _incoming_id(scope: Scope) -> str:
    for name, value in scope.get("headers", []):
        if name == b"x-request-id":
            candidate = value.decode("latin-1").strip()
            if candidate and len(candidate) <= _MAX_ID_LENGTH and candidate.isprintable():
                return candidate
    return uuid.uuid4().hex[:12]


class RequestIdLogFilter(logging.Filter):
    """Adds ``record.request_id`` so formats can use ``%(request_id)s``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id()
        return True


def install_log_filter(logger_: logging.Logger | None = None) -> RequestIdLogFilter:
    """Attach the filter to every handler of *logger_* (root by default)."""
    target = logger_ or logging.getLogger()
    log_filter = RequestIdLogFilter()
    for handler in target.handlers:
        if not any(isinstance(f, RequestIdLogFilter) for f in handler.filters):
            handler.addFilter(log_filter)
    return log_filter


class RequestContextMiddleware:
    """Bind a correlation id to each HTTP request (pure ASGI).

    A well-formed ``X-Request-ID`` from the client is kept; anything else
    is replaced.  The id is echoed in the response headers and mutating
    calls are logged with their status and duration.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_id(scope)
        scope.setdefault("state", {})["request_id"] = request_id
        method = scope.get("method", "")
        path = scope.get("path", "")
        started = time.perf_counter()

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), (b"x-request-id", request_id.encode())]
                if method in _MUTATING_METHODS:
                    logger.info(
                        "%s %s -> %d (%.0f ms)",
                        method, path, message["status"], (time.perf_counter() - started) * 1000,
                    )
            await send(message)

        token = request_id_var.set(request_id)
        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            request_id_var.reset(token)
