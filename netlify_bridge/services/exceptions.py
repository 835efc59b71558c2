"""Service layer exceptions"""

from datetime import datetime, timezone
from typing import Optional


class ServiceError(Exception):
    """Base exception for service layer errors"""

    def __init__(self, message: str, original_error: Optional[Exception] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.error_code = error_code or "SERVICE_ERROR"
        self.timestamp = datetime.now(timezone.utc)


class ValidationError(ServiceError):
    """Exception for input validation failures"""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message, error_code="VALIDATION_ERROR")
        self.field = field
        self.value = value


class UnauthorizedError(ServiceError):
    """Exception for authentication failures"""

    def __init__(self, message: str, user_id: Optional[str] = None, resource: Optional[str] = None):
        super().__init__(message, error_code="UNAUTHORIZED")
        self.user_id = user_id
        self.resource = resource


class ForbiddenError(ServiceError):
    """Exception for requests that are authenticated but not allowed"""

    def __init__(self, message: str, resource: Optional[str] = None):
        super().__init__(message, error_code="FORBIDDEN")
        self.resource = resource


class NotFoundError(ServiceError):
    """Exception for resource not found errors"""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None):
        super().__init__(message, error_code="NOT_FOUND")
        self.resource_type = resource_type
        self.resource_id = resource_id


class ExternalServiceError(ServiceError):
    """Exception for external service failures"""

    def __init__(
            self,
            message: str,
            service_name: Optional[str] = None,
            status_code: Optional[int] = None,
            original_error: Optional[Exception] = None
    ):
        super().__init__(message, original_error=original_error, error_code="EXTERNAL_SERVICE_ERROR")
        self.service_name = service_name
        self.status_code = status_code


class ConfigurationError(ServiceError):
    """Exception for configuration errors"""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message, error_code="CONFIGURATION_ERROR")
        self.config_key = config_key
