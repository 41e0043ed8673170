"""Tests for loading gateway configuration from the environment."""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from s3_gateway import GatewaySettings
from s3_gateway.settings import load_settings_from_env

ENV_VARS = (
    "AWS_REGION",
    "S3PROXY_S3_BUCKET",
    "S3PROXY_S3_ENDPOINT",
    "AWS_ACCESS_KEY",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_KEY",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "S3PROXY_S3_ADDRESSING_STYLE",
    "S3PROXY_HOST",
    "S3PROXY_PORT",
    "S3PROXY_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every variable the settings read."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestGatewaySettings:
    """Test GatewaySettings configuration."""

    def test_defaults(self, clean_env):
        """Test that only region and bucket are needed."""
        clean_env.setenv("AWS_REGION", "us-west-2")
        clean_env.setenv("S3PROXY_S3_BUCKET", "public-assets")

        settings = load_settings_from_env()

        assert settings.region == "us-west-2"
        assert settings.bucket == "public-assets"
        assert settings.endpoint is None
        assert settings.endpoint_url == "https://s3.us-west-2.amazonaws.com"
        assert settings.access_key is None
        assert settings.secret_key is None
        assert settings.addressing_style == "auto"
        assert settings.host == "0.0.0.0"
        assert settings.port == 8080
        assert settings.log_level == "INFO"

    def test_load_from_env(self, clean_env):
        """Test that every setting loads from its variable."""
        clean_env.setenv("AWS_REGION", "eu-central-1")
        clean_env.setenv("S3PROXY_S3_BUCKET", "media")
        clean_env.setenv("S3PROXY_S3_ENDPOINT", "http://minio:9000")
        clean_env.setenv("AWS_ACCESS_KEY", "AKIAEXAMPLE")
        clean_env.setenv("AWS_SECRET_KEY", "secret")
        clean_env.setenv("S3PROXY_PORT", "9090")
        clean_env.setenv("S3PROXY_LOG_LEVEL", "debug")

        settings = load_settings_from_env()

        assert settings.endpoint_url == "http://minio:9000"
        assert settings.access_key == "AKIAEXAMPLE"
        assert settings.secret_key == "secret"
        assert settings.port == 9090
        assert settings.log_level == "DEBUG"

    def test_standard_aws_credential_names(self, clean_env):
        """Test that the usual AWS credential variables are accepted."""
        clean_env.setenv("AWS_REGION", "eu-central-1")
        clean_env.setenv("S3PROXY_S3_BUCKET", "media")
        clean_env.setenv("AWS_ACCESS_KEY_ID", "AKIAOTHER")
        clean_env.setenv("AWS_SECRET_ACCESS_KEY", "other-secret")

        settings = load_settings_from_env()

        assert settings.access_key == "AKIAOTHER"
        assert settings.secret_key == "other-secret"

    def test_blank_endpoint_falls_back_to_region(self, clean_env):
        """Test that an empty endpoint means the regional default."""
        clean_env.setenv("AWS_REGION", "ap-south-1")
        clean_env.setenv("S3PROXY_S3_BUCKET", "media")
        clean_env.setenv("S3PROXY_S3_ENDPOINT", "")

        settings = load_settings_from_env()

        assert settings.endpoint_url == "https://s3.ap-south-1.amazonaws.com"

    @pytest.mark.parametrize("missing", ["AWS_REGION", "S3PROXY_S3_BUCKET"])
    def test_required_values(self, clean_env, missing: str):
        """Test that region and bucket are required."""
        clean_env.setenv("AWS_REGION", "us-east-1")
        clean_env.setenv("S3PROXY_S3_BUCKET", "media")
        clean_env.delenv(missing)

        with pytest.raises(ValidationError):
            load_settings_from_env()

    def test_empty_region_is_rejected(self, clean_env):
        """Test that a blank region is rejected."""
        clean_env.setenv("AWS_REGION", "  ")
        clean_env.setenv("S3PROXY_S3_BUCKET", "media")

        with pytest.raises(ValidationError):
            load_settings_from_env()

    def test_settings_are_immutable(self):
        """Test that settings cannot be changed after loading."""
        settings = GatewaySettings(region="us-east-1", bucket="media")
        with pytest.raises(ValidationError):
            settings.bucket = "other"  # type: ignore[misc]
