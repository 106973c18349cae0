# vehicle_service/observability.py
import logging
import sys
import time
from typing import Any, Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
    root.setLevel(level.upper())


class EventSink:
    """Structured event sink handed to workflows.

    Events go to the log only. Nothing in the service reads them back, so a
    workflow behaves the same whatever sink it is given.
    """

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger("vehicle_service.events")

    def emit(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        self.logger.log(level, "%s %s", event, rendered, extra={"event": event, "fields": fields})

    def warn(self, event: str, **fields: Any) -> None:
        self.emit(event, level=logging.WARNING, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.emit(event, level=logging.ERROR, **fields)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and elapsed time for each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - start) * 1000)
        logging.getLogger("vehicle_service.http").info(
            "%s %s %s %dms", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response


def add_middleware(app: FastAPI) -> None:
    app.add_middleware(RequestLoggingMiddleware)
