# vehicle_service/errors.py
import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    status_code = 400


class DuplicateVehicleError(ValidationError):
    """Raised when a unique index (VIN or partner id) rejects a write."""


class NotFound(ServiceError):
    status_code = 404


class Unauthorized(ServiceError):
    status_code = 401


class Forbidden(ServiceError):
    status_code = 403

    def __init__(self, message: str, details: Optional[Any] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        # tenant id, role and requester, kept for audit logging
        self.context = context or {}


class UpstreamFailure(ServiceError):
    """A partner or sibling-service call failed."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None, upstream_status: Optional[int] = None):
        super().__init__(message, details)
        self.upstream_status = upstream_status


class InternalError(ServiceError):
    status_code = 500


def create_error_response(message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    """Create the JSON error body shared by every handler"""
    response = {"message": message}
    if details is not None:
        response["details"] = details
    return response


def register_exception_handlers(app: FastAPI, production: bool = False) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(exc.message, exc.details),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=create_error_response("Invalid request payload", _plain_errors(exc.errors())),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        content = create_error_response("Internal Server Error")
        if not production:
            content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=500, content=content)


def _plain_errors(errors):
    return [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "error": err.get("msg")}
        for err in errors
    ]
