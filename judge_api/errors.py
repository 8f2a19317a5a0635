"""
Application error types and the handlers that render them
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Config

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for errors that carry their own HTTP status"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Any]] = None,
                 status_code: Optional[int] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class BadRequestError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class AuthenticationError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized access"


class AuthorizationError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class UpstreamServiceError(ApiError):
    """The execution provider failed or returned nothing usable"""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Code execution service unavailable"


class InternalServerError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(status_code: int, message: str, errors: Optional[List[Any]] = None) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "message": message,
        "errors": errors or [],
        "success": False,
    }


def success_body(status_code: int, message: str, data: Any = None) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "message": message,
        "data": data,
        "success": True,
    }


async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code,
                        content=error_body(exc.status_code, exc.message, exc.errors))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors into field-level messages"""
    field_errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field_errors.append({
            "field": ".".join(location),
            "message": error.get("msg", "Invalid value"),
        })
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST,
                        content=error_body(status.HTTP_400_BAD_REQUEST, "Validation failed", field_errors))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code,
                        content=error_body(exc.status_code, str(exc.detail)),
                        headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    message = "Internal Server Error" if Config.is_production() else (str(exc) or "Internal Server Error")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        content=error_body(status.HTTP_500_INTERNAL_SERVER_ERROR, message))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
