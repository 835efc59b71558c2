"""
HTTP-facing exception hierarchy and FastAPI handlers.
"""

from .base_exceptions import (
    BridgeException,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    InternalServerError,
    ExternalServiceError,
    ConfigurationError,
    from_service_error,
    setup_exception_handlers,
)

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
]
