"""
Tests for configuration and startup validation.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from netlify_bridge.config.settings import Environment, Settings
from netlify_bridge.exceptions.base_exceptions import (
    AuthenticationError,
    ExternalServiceError,
    InternalServerError,
    ValidationError,
    from_service_error,
)
from netlify_bridge.main import validate_configuration
from netlify_bridge.services import exceptions as service_exceptions
from netlify_bridge.services.exceptions import ConfigurationError
from tests.conftest import make_settings


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Should start with the documented defaults."""
        settings = Settings(_env_file=None)

        assert settings.slash_command == "/netlify"
        assert settings.ENVIRONMENT == Environment.DEVELOPMENT
        assert settings.SERVICE_URL is None
        assert settings.callback_url("/webhook") is None

    def test_trailing_slash_removed(self):
        """Should normalize base URLs."""
        settings = make_settings(SERVICE_URL="https://bridge.example.com/", MATTERMOST_URL="https://chat.example.com/")

        assert settings.callback_url("/webhook") == "https://bridge.example.com/webhook"
        assert settings.MATTERMOST_URL == "https://chat.example.com"

    def test_custom_trigger(self):
        """Should build the slash command from the trigger."""
        assert make_settings(COMMAND_TRIGGER="deploybot").slash_command == "/deploybot"

    def test_invalid_trigger(self):
        """Should reject triggers with spaces."""
        with pytest.raises(PydanticValidationError):
            make_settings(COMMAND_TRIGGER="net lify")

    def test_missing_required(self):
        """Should name the unset required settings."""
        settings = Settings(_env_file=None, MATTERMOST_BOT_TOKEN="bot")

        assert settings.missing_required() == [
            "NETLIFY_OAUTH_CLIENT_ID",
            "NETLIFY_OAUTH_SECRET",
            "ACTION_SECRET",
            "ENCRYPTION_KEY",
        ]

    def test_encryption_key_optional_when_disabled(self):
        """Should not require a key when tokens are stored in plain text."""
        settings = make_settings(ENCRYPTION_KEY="", ENCRYPT_TOKENS=False)

        assert settings.missing_required() == []

    def test_production_rules(self):
        """Should refuse unsafe production settings."""
        with pytest.raises(PydanticValidationError):
            make_settings(ENVIRONMENT="production", DEBUG=True)

        with pytest.raises(PydanticValidationError):
            make_settings(ENVIRONMENT="production", ENCRYPT_TOKENS=False)

        assert make_settings(ENVIRONMENT="production", MATTERMOST_COMMAND_TOKEN="mm-token").is_production()

    def test_command_token_required_in_production(self):
        """Should not trust slash command forms without a token in production."""
        assert make_settings(ENVIRONMENT="production").missing_required() == ["MATTERMOST_COMMAND_TOKEN"]
        assert make_settings(ENVIRONMENT="production", MATTERMOST_COMMAND_TOKEN="mm-token").missing_required() == []
        assert make_settings().missing_required() == []


class TestValidateConfiguration:
    """Tests for the startup configuration check."""

    def test_complete(self, settings):
        """Should accept a complete configuration."""
        validate_configuration(settings)

    def test_incomplete(self):
        """Should refuse to start without required settings."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_configuration(make_settings(MATTERMOST_BOT_TOKEN=""))

        assert exc_info.value.config_key == "MATTERMOST_BOT_TOKEN"

    def test_optional_settings(self):
        """Should start without a service URL or webhook secret."""
        validate_configuration(make_settings(SERVICE_URL=None, WEBHOOK_SECRET=None))

    def test_production_without_command_token(self):
        """Should refuse to start in production without a slash command token."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_configuration(make_settings(ENVIRONMENT="production"))

        assert exc_info.value.config_key == "MATTERMOST_COMMAND_TOKEN"


class TestServiceErrorMapping:
    """Tests for mapping service errors to HTTP errors."""

    def test_status_codes(self):
        """Should map each service error to its status code."""
        cases = [
            (service_exceptions.ValidationError("bad"), 400),
            (service_exceptions.UnauthorizedError("who"), 401),
            (service_exceptions.ForbiddenError("no"), 403),
            (service_exceptions.NotFoundError("gone"), 404),
            (service_exceptions.ExternalServiceError("down"), 502),
            (service_exceptions.ConfigurationError("unset"), 500),
            (service_exceptions.ServiceError("oops"), 500),
        ]

        assert [from_service_error(error).status_code for error, _ in cases] == [code for _, code in cases]

    def test_types(self):
        """Should keep the message and cause."""
        error = service_exceptions.UnauthorizedError("Not authorized", user_id="u1")

        mapped = from_service_error(error)

        assert isinstance(mapped, AuthenticationError)
        assert mapped.user_message == "Not authorized"
        assert mapped.caused_by is error
        assert isinstance(from_service_error(service_exceptions.ValidationError("x")), ValidationError)
        assert isinstance(from_service_error(service_exceptions.ExternalServiceError("x")), ExternalServiceError)
        assert isinstance(from_service_error(service_exceptions.ServiceError("x")), InternalServerError)
