"""
Error taxonomy and the mapping of errors to HTTP responses.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class AithreyaError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An internal error occurred"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class Unauthenticated(AithreyaError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated."


class Forbidden(AithreyaError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to access this route."


class NotFound(AithreyaError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class InvalidArgument(AithreyaError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "InvalidArgument":
        """Build an error carrying a single field-level detail."""
        return cls(message, errors=[{"field": field, "message": message}])


class Conflict(InvalidArgument):
    default_message = "Resource already exists"


class Unavailable(AithreyaError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service temporarily unavailable. Please try again later."


def error_body(message: str, errors: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    """Flatten pydantic errors to ``{field, message}`` pairs."""
    result = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        result.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return result


def register_exception_handlers(app: FastAPI) -> None:
    settings = app.state.settings

    @app.exception_handler(AithreyaError)
    async def aithreya_error_handler(request: Request, exc: AithreyaError):
        """Handle typed application errors."""
        return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.errors))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle validation errors."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body("Validation failed", field_errors(exc)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
            message = f"Route {request.url.path} not found"
        return JSONResponse(status_code=exc.status_code, content=error_body(message))

    @app.exception_handler(DBAPIError)
    async def storage_exception_handler(request: Request, exc: DBAPIError):
        """Storage faults are reported as unavailable and never retried."""
        if isinstance(exc, OperationalError) or exc.connection_invalidated:
            logger.error(f"Storage unavailable on {request.method} {request.url.path}: {exc}")
            return JSONResponse(
                status_code=Unavailable.status_code,
                content=error_body(Unavailable.default_message),
            )
        return await general_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        if settings.is_production():
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_body("An internal error occurred"),
            )
        body = error_body("An internal error occurred")
        body["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
