"""Centralized configuration for the re-signing service.

Uses Pydantic BaseSettings with environment variable and ``.env`` loading.
All RS_* environment variables are validated at import time. The legacy
unprefixed names (``BOT_TOKEN``, ``CLIENT_ID``, ``CLIENT_SECRET``, ``PORT``)
are accepted as aliases.

Secrets are allowed to be empty here; the application lifespan refuses to
start without them.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="RS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Upstream platform
    bot_token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("RS_BOT_TOKEN", "BOT_TOKEN"),
        description="Upstream platform secret (bot token) used to verify launch data",
    )

    # Downstream authority
    client_id: str = Field(
        default="",
        validation_alias=AliasChoices("RS_CLIENT_ID", "CLIENT_ID"),
        description="Downstream client identifier bound into re-issued credentials",
    )
    client_secret: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("RS_CLIENT_SECRET", "CLIENT_SECRET"),
        description="Downstream client secret used to re-sign credentials",
    )

    # Logging
    log_format: str = Field(default="text", description="Log format: text or json")
    log_level: str = Field(default="INFO", description="Python log level")

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")  # noqa: S104
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        validation_alias=AliasChoices("RS_PORT", "PORT"),
        description="Server bind port",
    )

    # CORS
    cors_origins: str = Field(default="*", description="Comma-separated CORS origins")

    # Metrics
    metrics_enabled: bool = Field(default=True, description="Expose Prometheus /metrics")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("text", "json"):
            msg = f"RS_LOG_FORMAT must be 'text' or 'json', got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        import logging

        v = v.upper()
        if not hasattr(logging, v):
            msg = f"RS_LOG_LEVEL must be a valid Python log level, got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("client_id")
    @classmethod
    def strip_client_id(cls, v: str) -> str:
        return v.strip()

    @property
    def cors_origin_list(self) -> list[str]:
        """Return parsed list of CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def secrets_configured(self) -> bool:
        """True when all three re-signing values are present and non-empty."""
        return bool(
            self.bot_token.get_secret_value()
            and self.client_secret.get_secret_value()
            and self.client_id
        )


# Singleton, validated at import time.
settings = Settings()
