"""
Global Exception Handling
Custom exceptions and FastAPI exception handlers.

Error Response Format:
{
    "error": "Human readable message",
    "code": "ERROR_CODE",
    "details": {...} | [...]      (only when present)
}
"""
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from src.core.config import settings
from src.core.logging import REQUEST_ID_HEADER, get_logger, get_request_id
from src.core.validation import issues_from_errors

logger = get_logger(__name__)


class FleetInventoryException(Exception):
    """Base exception for the fleet inventory application."""

    def __init__(
        self,
        message: str = "An error occurred",
        code: str = "INTERNAL_ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | list[Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundError(FleetInventoryException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": str(identifier)} if identifier is not None else None,
        )
        self.resource = resource


class ConflictError(FleetInventoryException):
    """Uniqueness or referential conflict."""

    def __init__(self, message: str = "Resource conflict", field: str | None = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=status.HTTP_409_CONFLICT,
            details={"field": field} if field else None,
        )
        self.field = field


class BusinessRuleError(FleetInventoryException):
    """A domain guard failed (capacity, attachment exclusivity)."""

    def __init__(self, message: str, rule: str):
        super().__init__(
            message=message,
            code="BUSINESS_RULE_VIOLATION",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"rule": rule},
        )
        self.rule = rule


class ValidationError(FleetInventoryException):
    """Request shape validation failed."""

    def __init__(self, issues: list[dict[str, str]], message: str = "Validation failed"):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=issues,
        )
        self.issues = issues


def _build_error_response(
    code: str,
    message: str,
    status_code: int,
    request: Request,
    details: dict | list | None = None,
) -> ORJSONResponse:
    """Build standardized error response."""
    content: dict[str, Any] = {"error": message, "code": code}
    if details:
        content["details"] = details

    return ORJSONResponse(
        status_code=status_code,
        content=content,
        headers={REQUEST_ID_HEADER: get_request_id(request)},
    )


async def fleet_exception_handler(request: Request, exc: FleetInventoryException) -> ORJSONResponse:
    """Handler for FleetInventoryException."""
    logger.warning(
        "Application error",
        error_code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        path=str(request.url.path),
        method=request.method,
    )

    return _build_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        request=request,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
    """Handler for HTTPException (unknown routes, wrong methods)."""
    code_map = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        500: "INTERNAL_ERROR",
    }

    error_code = code_map.get(exc.status_code, "HTTP_ERROR")

    logger.warning(
        "HTTP error",
        error_code=error_code,
        status_code=exc.status_code,
        detail=exc.detail,
        path=str(request.url.path),
    )

    return _build_error_response(
        code=error_code,
        message=str(exc.detail),
        status_code=exc.status_code,
        request=request,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    """Handler for request validation errors raised by FastAPI (body, path and query at once)."""
    return await fleet_exception_handler(request, ValidationError(issues_from_errors(exc.errors())))


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Handler for unhandled exceptions. Message detail only leaves the process outside production."""
    logger.exception(
        "Unhandled exception",
        path=str(request.url.path),
        method=request.method,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )

    if settings.is_production:
        message = "Internal Server Error"
        details = None
    else:
        message = str(exc) or "Internal Server Error"
        details = {"type": type(exc).__name__}

    return _build_error_response(
        code="INTERNAL_ERROR",
        message=message,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        request=request,
        details=details,
    )
