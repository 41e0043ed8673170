from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """Configuration for the bucket the gateway serves and its listener."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    region: str = Field(validation_alias="AWS_REGION")
    bucket: str = Field(validation_alias="S3PROXY_S3_BUCKET")
    endpoint: str | None = Field(
        default=None,
        validation_alias="S3PROXY_S3_ENDPOINT",
    )
    access_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AWS_ACCESS_KEY", "AWS_ACCESS_KEY_ID"),
    )
    secret_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AWS_SECRET_KEY", "AWS_SECRET_ACCESS_KEY"),
    )
    session_token: str | None = Field(
        default=None,
        validation_alias="AWS_SESSION_TOKEN",
    )
    addressing_style: Literal["auto", "virtual", "path"] = Field(
        default="auto",
        validation_alias="S3PROXY_S3_ADDRESSING_STYLE",
    )
    host: str = Field(default="0.0.0.0", validation_alias="S3PROXY_HOST")
    port: int = Field(default=8080, validation_alias="S3PROXY_PORT")
    log_level: str = Field(default="INFO", validation_alias="S3PROXY_LOG_LEVEL")

    @field_validator("region", "bucket")
    @classmethod
    def _require_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("endpoint", mode="before")
    @classmethod
    def _blank_endpoint_is_default(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def endpoint_url(self) -> str:
        """Return the configured endpoint, or the regional AWS endpoint."""
        return self.endpoint or f"https://s3.{self.region}.amazonaws.com"


def load_settings_from_env() -> GatewaySettings:
    """Load gateway settings from environment variables.

    Returns:
        GatewaySettings instance populated from environment variables.

    Raises:
        pydantic.ValidationError: If a required variable is missing or invalid.
    """
    return GatewaySettings()  # type: ignore[call-arg]
