"""
Application configuration settings using Pydantic Settings.

This module provides centralized configuration management with
environment variable support, validation, and type safety.
"""

from typing import List, Optional
from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from netlify_bridge.config.constants import (
    NETLIFY_API_URL,
    NETLIFY_AUTH_URL,
    NETLIFY_TOKEN_URL,
)


class Environment(str, Enum):
    """Application environment options."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        validate_assignment=True,
        extra="forbid",
    )

    # Environment Configuration
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Server Configuration
    HOST: str = Field(
        default="0.0.0.0",
        description="Server host address"
    )
    PORT: int = Field(
        default=8065,
        ge=1,
        le=65535,
        description="Server port number"
    )
    SERVICE_URL: Optional[str] = Field(
        default=None,
        description="Public base URL of this service, used in links and callbacks"
    )
    ALLOWED_HOSTS: List[str] = Field(
        default=["*"],
        description="Trusted host middleware allowed hosts"
    )

    # Logging Configuration
    LOG_LEVEL: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )
    LOG_FORMAT: str = Field(
        default="json",
        pattern=r"^(json|text)$",
        description="Log output format"
    )

    # Mattermost Configuration
    COMMAND_TRIGGER: str = Field(
        default="netlify",
        min_length=1,
        pattern=r"^[a-z0-9_-]+$",
        description="Slash command trigger word"
    )
    MATTERMOST_URL: str = Field(
        default="http://localhost:8065",
        description="Mattermost server base URL"
    )
    MATTERMOST_BOT_TOKEN: str = Field(
        default="",
        description="Access token of the Netlify bot account"
    )
    MATTERMOST_COMMAND_TOKEN: Optional[str] = Field(
        default=None,
        description="Token Mattermost sends with every slash command request"
    )

    # Netlify Configuration
    NETLIFY_OAUTH_CLIENT_ID: str = Field(
        default="",
        description="OAuth client ID generated by Netlify"
    )
    NETLIFY_OAUTH_SECRET: str = Field(
        default="",
        description="OAuth secret generated by Netlify"
    )
    NETLIFY_API_URL: str = Field(
        default=NETLIFY_API_URL,
        description="Netlify REST API base URL"
    )
    NETLIFY_AUTH_URL: str = Field(
        default=NETLIFY_AUTH_URL,
        description="Netlify OAuth authorization URL"
    )
    NETLIFY_TOKEN_URL: str = Field(
        default=NETLIFY_TOKEN_URL,
        description="Netlify OAuth token URL"
    )

    # Security Configuration
    ENCRYPTION_KEY: str = Field(
        default="",
        description="Key used to encrypt stored access tokens"
    )
    ENCRYPT_TOKENS: bool = Field(
        default=True,
        description="Encrypt access tokens before storing them"
    )
    ACTION_SECRET: str = Field(
        default="",
        description="Shared secret embedded in interactive messages and connect links"
    )
    WEBHOOK_SECRET: Optional[str] = Field(
        default=None,
        description="Secret Netlify signs outgoing webhook requests with"
    )
    AUTH_REDIRECT_HTML_PATH: Optional[str] = Field(
        default=None,
        description="HTML page shown once the OAuth flow completes"
    )

    # Redis Configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Redis maximum connections"
    )
    REDIS_SOCKET_TIMEOUT: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Redis socket timeout in seconds"
    )
    KV_KEY_PREFIX: str = Field(
        default="",
        max_length=64,
        description="Namespace prefix for every key-value store key"
    )
    OAUTH_STATE_TTL_SECONDS: int = Field(
        default=600,
        ge=30,
        le=86400,
        description="Lifetime of an unused OAuth anti-CSRF state"
    )

    # Performance Configuration
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Timeout for outbound HTTP requests"
    )

    # Monitoring Configuration
    METRICS_ENABLED: bool = Field(
        default=True,
        description="Enable metrics collection"
    )

    @field_validator("SERVICE_URL", "MATTERMOST_URL", "NETLIFY_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalize base URLs so paths can be appended."""
        if v is None:
            return v
        return v.strip().rstrip("/")

    @model_validator(mode="after")
    def validate_environment_consistency(self):
        """Validate environment-specific consistency."""
        if self.ENVIRONMENT == Environment.PRODUCTION:
            if self.DEBUG:
                raise ValueError("Debug mode should not be enabled in production")

            if not self.ENCRYPT_TOKENS:
                raise ValueError("Access tokens must be encrypted in production")

            if self.ACTION_SECRET and len(self.ACTION_SECRET) < 16:
                raise ValueError("Action secret must be at least 16 characters in production")

        return self

    def missing_required(self) -> List[str]:
        """Return the names of required settings that are not configured."""
        required = {
            "MATTERMOST_BOT_TOKEN": self.MATTERMOST_BOT_TOKEN,
            "NETLIFY_OAUTH_CLIENT_ID": self.NETLIFY_OAUTH_CLIENT_ID,
            "NETLIFY_OAUTH_SECRET": self.NETLIFY_OAUTH_SECRET,
            "ACTION_SECRET": self.ACTION_SECRET,
        }
        if self.ENCRYPT_TOKENS:
            required["ENCRYPTION_KEY"] = self.ENCRYPTION_KEY
        # slash command callers are only identified by the form they post
        if self.is_production():
            required["MATTERMOST_COMMAND_TOKEN"] = self.MATTERMOST_COMMAND_TOKEN

        return [name for name, value in required.items() if not value]

    @property
    def slash_command(self) -> str:
        """Base command users type, including the leading slash."""
        return f"/{self.COMMAND_TRIGGER}"

    def command_message(self, template: str) -> str:
        """Fill the configured slash command into a message template."""
        return template.format(command=self.slash_command)

    def callback_url(self, path: str) -> Optional[str]:
        """Absolute URL of a route on this service, or None without SERVICE_URL."""
        if not self.SERVICE_URL:
            return None
        return f"{self.SERVICE_URL}{path}"

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached singleton).

    Returns:
        Settings: Configured application settings instance
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Force reload of application settings.

    Returns:
        Settings: New settings instance
    """
    get_settings.cache_clear()
    return get_settings()
