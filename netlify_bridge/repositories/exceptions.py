"""
Repository-specific exceptions
==============================

Exception Hierarchy:
    RepositoryError (base)
    ├── ConnectionError
    └── SerializationError
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class RepositoryError(Exception):
    """
    Base exception for all repository operations
    """

    def __init__(
            self,
            message: str,
            original_error: Optional[Exception] = None,
            error_code: Optional[str] = None,
            context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize repository error

        Args:
            message: Human-readable error message
            original_error: Original exception that caused this error
            error_code: Machine-readable error code
            context: Additional context about the error
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.error_code = error_code or self.__class__.__name__.upper()
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "original_error": str(self.original_error) if self.original_error else None
        }

    def __str__(self) -> str:
        base_msg = self.message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (Context: {context_str})"
        return base_msg


class ConnectionError(RepositoryError):
    """
    Exception raised when the key-value store cannot be reached
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, original_error=original_error, error_code="KV_CONNECTION_ERROR")


class SerializationError(RepositoryError):
    """
    Exception raised when a stored value cannot be encoded or decoded
    """

    def __init__(self, message: str, key: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            original_error=original_error,
            error_code="SERIALIZATION_ERROR",
            context={"key": key} if key else None,
        )
