"""
HTTP-facing exceptions and FastAPI exception handlers.

Errors reaching the HTTP layer are rendered as one JSON envelope:
{"status": "error", "error": {...}, "meta": {...}}.
"""

import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from netlify_bridge.config.constants import ErrorCategory
from netlify_bridge.services import exceptions as service_exceptions
from netlify_bridge.utils.logger import get_logger

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BridgeException(Exception):
    """
    Base exception class for errors answered over HTTP.

    This provides a consistent interface for error handling with
    structured error information and logging integration.
    """

    def __init__(
            self,
            message: str,
            error_code: str = "INTERNAL_ERROR",
            status_code: int = 500,
            details: Optional[Dict[str, Any]] = None,
            category: ErrorCategory = ErrorCategory.INTERNAL,
            user_message: Optional[str] = None,
            user_id: Optional[str] = None,
            caused_by: Optional[Exception] = None
    ):
        """
        Initialize exception.

        Args:
            message: Internal error message for logging
            error_code: Machine-readable error code
            status_code: HTTP status code
            details: Additional error details
            category: Error category for monitoring
            user_message: Message returned to the caller
            user_id: Mattermost user ID if available
            caused_by: Original exception that caused this error
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.category = category
        self.user_message = user_message or message
        self.user_id = user_id
        self.caused_by = caused_by
        self.timestamp = _now()

    def to_dict(self) -> Dict[str, Any]:
        error_dict = {
            "error": {
                "code": self.error_code,
                "message": self.user_message,
                "category": self.category.value,
                "timestamp": self.timestamp.isoformat(),
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict

    def log_error(self, logger: Optional[structlog.stdlib.BoundLogger] = None) -> None:
        """
        Log the error with a level matching its status code.

        Args:
            logger: Logger instance to use
        """
        if logger is None:
            logger = get_logger(__name__)

        log_data = {
            "error_code": self.error_code,
            "error_category": self.category.value,
            "status_code": self.status_code,
        }

        if self.user_id:
            log_data["user_id"] = self.user_id

        if self.details:
            log_data["details"] = self.details

        if self.caused_by:
            log_data["caused_by"] = str(self.caused_by)
            log_data["caused_by_type"] = type(self.caused_by).__name__

        if self.status_code >= 500:
            logger.error(self.message, **log_data)
        elif self.status_code >= 400:
            logger.warning(self.message, **log_data)
        else:
            logger.info(self.message, **log_data)


class ValidationError(BridgeException):
    """Exception for malformed requests."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            details={"field": field} if field else None,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )


class AuthenticationError(BridgeException):
    """Exception for requests that cannot be attributed to a user."""

    def __init__(self, message: str = "Not authorized", **kwargs):
        super().__init__(
            message=message,
            error_code="AUTHENTICATION_ERROR",
            status_code=401,
            category=ErrorCategory.AUTHENTICATION,
            **kwargs
        )


class AuthorizationError(BridgeException):
    """Exception for requests that are not allowed."""

    def __init__(self, message: str = "Forbidden", **kwargs):
        super().__init__(
            message=message,
            error_code="AUTHORIZATION_ERROR",
            status_code=403,
            category=ErrorCategory.AUTHORIZATION,
            **kwargs
        )


class NotFoundError(BridgeException):
    """Exception for missing resources."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id

        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            status_code=404,
            details=details or None,
            category=ErrorCategory.NOT_FOUND,
            **kwargs
        )


class InternalServerError(BridgeException):
    """Exception for unexpected internal failures."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code="INTERNAL_SERVER_ERROR",
            status_code=500,
            category=ErrorCategory.INTERNAL,
            **kwargs
        )


class ExternalServiceError(BridgeException):
    """Exception for failures of Netlify or Mattermost."""

    def __init__(self, message: str, service_name: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code="EXTERNAL_SERVICE_ERROR",
            status_code=502,
            details={"service": service_name} if service_name else None,
            category=ErrorCategory.EXTERNAL,
            **kwargs
        )


class ConfigurationError(BridgeException):
    """Exception for a service that is missing required configuration."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            status_code=500,
            details={"config_key": config_key} if config_key else None,
            category=ErrorCategory.INTERNAL,
            user_message="Service configuration error. Please contact your administrator.",
            **kwargs
        )


def from_service_error(error: service_exceptions.ServiceError) -> BridgeException:
    """Map a service layer error to its HTTP counterpart."""
    if isinstance(error, service_exceptions.ValidationError):
        return ValidationError(error.message, field=error.field, caused_by=error)
    if isinstance(error, service_exceptions.UnauthorizedError):
        return AuthenticationError(error.message, user_id=error.user_id, caused_by=error)
    if isinstance(error, service_exceptions.ForbiddenError):
        return AuthorizationError(error.message, caused_by=error)
    if isinstance(error, service_exceptions.NotFoundError):
        return NotFoundError(error.message, resource_type=error.resource_type, resource_id=error.resource_id, caused_by=error)
    if isinstance(error, service_exceptions.ExternalServiceError):
        return ExternalServiceError(error.message, service_name=error.service_name, caused_by=error)
    if isinstance(error, service_exceptions.ConfigurationError):
        return ConfigurationError(error.message, config_key=error.config_key, caused_by=error)
    return InternalServerError(error.message, caused_by=error.original_error or error)


def _meta(request: Request) -> Dict[str, Any]:
    meta = {
        "timestamp": _now().isoformat(),
        "path": str(request.url.path),
        "method": request.method,
    }

    request_id = getattr(request.state, "request_id", None)
    if request_id:
        meta["request_id"] = request_id

    return meta


async def bridge_exception_handler(
        request: Request,
        exc: BridgeException
) -> JSONResponse:
    """Handler for the service's own HTTP exceptions."""
    exc.log_error()

    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", **exc.to_dict(), "meta": _meta(request)}
    )


async def service_exception_handler(
        request: Request,
        exc: service_exceptions.ServiceError
) -> JSONResponse:
    """Handler for service layer errors that reached a route."""
    return await bridge_exception_handler(request, from_service_error(exc))


async def http_exception_handler(
        request: Request,
        exc: HTTPException
) -> JSONResponse:
    """
    Handler for standard HTTP exceptions.

    Args:
        request: FastAPI request object
        exc: HTTP exception instance

    Returns:
        JSON response with error details
    """
    category_map = {
        400: ErrorCategory.VALIDATION,
        401: ErrorCategory.AUTHENTICATION,
        403: ErrorCategory.AUTHORIZATION,
        404: ErrorCategory.NOT_FOUND,
        500: ErrorCategory.INTERNAL,
        502: ErrorCategory.EXTERNAL,
    }

    category = category_map.get(exc.status_code, ErrorCategory.INTERNAL)

    error_data = {
        "status": "error",
        "error": {
            "code": f"HTTP_{exc.status_code}",
            "message": exc.detail,
            "category": category.value,
            "timestamp": _now().isoformat(),
        },
        "meta": _meta(request)
    }

    logger.warning(
        "HTTP exception occurred",
        status_code=exc.status_code,
        detail=exc.detail,
        path=str(request.url.path),
        method=request.method
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_data,
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
) -> JSONResponse:
    """Handler for request validation errors."""
    validation_errors = [
        {
            "field": ".".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    error_data = {
        "status": "error",
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "category": ErrorCategory.VALIDATION.value,
            "timestamp": _now().isoformat(),
            "details": {
                "validation_errors": validation_errors
            }
        },
        "meta": _meta(request)
    }

    logger.warning(
        "Request validation failed",
        validation_errors=validation_errors,
        path=str(request.url.path),
        method=request.method
    )

    return JSONResponse(
        status_code=400,
        content=error_data
    )


async def generic_exception_handler(
        request: Request,
        exc: Exception
) -> JSONResponse:
    """Handler for unexpected exceptions."""
    error_id = str(uuid.uuid4())

    error_data = {
        "status": "error",
        "error": {
            "code": "INTERNAL_SERVER_ERROR",
            "message": "An unexpected error occurred",
            "category": ErrorCategory.INTERNAL.value,
            "timestamp": _now().isoformat(),
            "error_id": error_id,
        },
        "meta": _meta(request)
    }

    logger.error(
        "Unexpected exception occurred",
        error_id=error_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=str(request.url.path),
        method=request.method,
        traceback=traceback.format_exc()
    )

    return JSONResponse(
        status_code=500,
        content=error_data
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Setup exception handlers for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(BridgeException, bridge_exception_handler)
    app.add_exception_handler(service_exceptions.ServiceError, service_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Catch-all
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers configured successfully")


__all__ = [
    "BridgeException",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "InternalServerError",
    "ExternalServiceError",
    "ConfigurationError",
    "from_service_error",
    "setup_exception_handlers",
    "bridge_exception_handler",
    "service_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "generic_exception_handler",
]
