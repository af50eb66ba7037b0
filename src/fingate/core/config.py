"""Configuration management for fingate.

Uses Pydantic Settings for type-safe, environment-based configuration.
"""

from typing import Any

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

# Load environment variables from .env file
load_dotenv(override=False)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # App configuration
    app_name: str = Field("fingate", alias="FINGATE_APP_NAME")
    version: str = Field("0.1.0", alias="FINGATE_APP_VERSION")
    environment: str = Field("development", alias="FINGATE_ENVIRONMENT")

    # Logging configuration
    log_level: str = Field("INFO", alias="FINGATE_LOG_LEVEL")
    log_format: str = Field("text", alias="FINGATE_LOG_FORMAT")  # text or json
    log_file: str | None = Field(None, alias="FINGATE_LOG_FILE")

    # Resilient fetch policy
    http_timeout: float = Field(15.0, alias="FINGATE_HTTP_TIMEOUT")
    http_retry_attempts: int = Field(3, alias="FINGATE_HTTP_RETRY_ATTEMPTS")  # total attempts, not retries
    http_retry_min_delay: float = Field(0.5, alias="FINGATE_HTTP_RETRY_MIN_DELAY")
    http_retry_max_delay: float = Field(30.0, alias="FINGATE_HTTP_RETRY_MAX_DELAY")
    http_retry_jitter: float = Field(0.1, alias="FINGATE_HTTP_RETRY_JITTER")

    # Generated-report polling
    report_poll_initial_delay: float = Field(5.0, alias="FINGATE_REPORT_POLL_INITIAL_DELAY")
    report_poll_backoff: float = Field(1.5, alias="FINGATE_REPORT_POLL_BACKOFF")
    report_poll_max_delay: float = Field(30.0, alias="FINGATE_REPORT_POLL_MAX_DELAY")
    report_poll_max_attempts: int = Field(12, alias="FINGATE_REPORT_POLL_MAX_ATTEMPTS")

    # Device-code polling
    device_poll_default_interval: float = Field(5.0, alias="FINGATE_DEVICE_POLL_DEFAULT_INTERVAL")
    device_poll_slow_down_factor: float = Field(1.5, alias="FINGATE_DEVICE_POLL_SLOW_DOWN_FACTOR")
    device_poll_max_interval: float = Field(30.0, alias="FINGATE_DEVICE_POLL_MAX_INTERVAL")

    # BTG Pactual (device-code OAuth)
    btg_client_id: str | None = Field(None, alias="BTG_CLIENT_ID")

    # Mercado Livre (authorization-code OAuth with PKCE)
    mercadolivre_client_id: str | None = Field(None, alias="MERCADOLIVRE_CLIENT_ID")
    mercadolivre_client_secret: str | None = Field(None, alias="MERCADOLIVRE_CLIENT_SECRET")
    mercadolivre_redirect_uri: str = Field("http://localhost:8888/callback", alias="MERCADOLIVRE_REDIRECT_URI")

    # Mercado Pago (static access token)
    mercadopago_access_token: str | None = Field(None, alias="MERCADOPAGO_ACCESS_TOKEN")
    mercadopago_environment: str = Field("production", alias="MERCADOPAGO_ENVIRONMENT")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["text", "json"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment setting."""
        valid_environments = ["development", "staging", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("mercadopago_environment")
    @classmethod
    def validate_mercadopago_environment(cls, v: str) -> str:
        """Validate Mercado Pago environment."""
        valid_environments = ["sandbox", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Mercado Pago environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("http_retry_attempts", "report_poll_max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        """Attempt budgets must allow at least one attempt."""
        if v < 1:
            raise ValueError("Attempt counts must be at least 1")
        return v

    @field_validator("btg_client_id", "mercadolivre_client_id", "mercadolivre_client_secret", "mercadopago_access_token")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        """Treat blank credentials as unset."""
        if v is not None and not v.strip():
            return None
        return v

    def require(self, *names: str) -> tuple[Any, ...]:
        """Return the values of the named settings, raising if any is unset.

        Used by provider integrations to surface missing client credentials
        before any network call is attempted.
        """
        missing = []
        values = []
        for name in names:
            value = getattr(self, name)
            if value is None:
                field = type(self).model_fields[name]
                missing.append(field.alias or name.upper())
            values.append(value)
        if missing:
            raise ConfigurationError(missing)
        return tuple(values)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Build a fresh settings instance from the environment."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance - will be created when first accessed
settings = None


def get_settings_instance() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global settings  # noqa: PLW0603
    if settings is None:
        settings = get_settings()
    return settings
