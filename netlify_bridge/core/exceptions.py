"""
Core exceptions for the Netlify Bridge integration layer.

This module defines the errors raised by the outbound API clients
(Netlify REST API, Netlify OAuth token endpoint and Mattermost REST API).
"""

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class CoreError(Exception):
    """Base exception for all core integration errors."""

    def __init__(
            self,
            message: str,
            error_code: Optional[str] = None,
            details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat()
        }


class ExternalAPIError(CoreError):
    """Raised when a call to an external HTTP API fails."""

    def __init__(
            self,
            service: str,
            operation: str,
            message: str,
            status_code: Optional[int] = None,
            response_body: Optional[str] = None,
            error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            details={
                "service": service,
                "operation": operation,
                "status_code": status_code,
                "response_body": response_body
            }
        )
        self.service = service
        self.operation = operation
        self.status_code = status_code


class NetlifyAPIError(ExternalAPIError):
    """Raised when the Netlify REST API rejects or fails a request."""

    def __init__(
            self,
            operation: str,
            message: str,
            status_code: Optional[int] = None,
            response_body: Optional[str] = None
    ):
        super().__init__(
            service="netlify",
            operation=operation,
            message=message,
            status_code=status_code,
            response_body=response_body,
            error_code="NETLIFY_API_ERROR"
        )


class MattermostAPIError(ExternalAPIError):
    """Raised when the Mattermost REST API rejects or fails a request."""

    def __init__(
            self,
            operation: str,
            message: str,
            status_code: Optional[int] = None,
            response_body: Optional[str] = None
    ):
        super().__init__(
            service="mattermost",
            operation=operation,
            message=message,
            status_code=status_code,
            response_body=response_body,
            error_code="MATTERMOST_API_ERROR"
        )


class OAuthExchangeError(ExternalAPIError):
    """Raised when an authorization code cannot be exchanged for a token."""

    def __init__(
            self,
            message: str,
            status_code: Optional[int] = None,
            response_body: Optional[str] = None
    ):
        super().__init__(
            service="netlify",
            operation="oauth_token_exchange",
            message=message,
            status_code=status_code,
            response_body=response_body,
            error_code="OAUTH_EXCHANGE_ERROR"
        )


__all__ = [
    "CoreError",
    "ExternalAPIError",
    "NetlifyAPIError",
    "MattermostAPIError",
    "OAuthExchangeError",
]
