"""Logging setup with a per-request correlation id."""

import logging
import time
from contextvars import ContextVar

from fastapi import FastAPI, Request

from scanbook.shared.ulid import generate_ulid

REQUEST_ID_HEADER = "X-Request-ID"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

logger = logging.getLogger("scanbook.request")


class RequestIdFilter(logging.Filter):
    """Stamp each record with the id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if getattr(handler, "_scanbook", False):
            return

    handler = logging.StreamHandler()
    handler._scanbook = True  # type: ignore[attr-defined]
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)
    root.setLevel(level.upper())


def install_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def _request_scope(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_ulid()
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "%s %s -> %s (%.1f ms)",
                request.method,
                request.url.path,
                response.status_code,
                elapsed_ms,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
