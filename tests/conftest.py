from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fakes import FakeBody, FakeFetcher
from s3_gateway import Found, GatewaySettings, ObjectMetadata


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(region="eu-west-1", bucket="assets")


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def logo_bytes() -> bytes:
    return bytes(range(256)) * 8


@pytest.fixture
def logo_body(logo_bytes: bytes) -> FakeBody:
    return FakeBody(logo_bytes)


@pytest.fixture
def logo_found(logo_bytes: bytes, logo_body: FakeBody) -> Found:
    """The 2048 byte PNG served for ``/images/logo.png``."""
    metadata = ObjectMetadata(
        content_type="image/png",
        content_length=len(logo_bytes),
        last_modified=datetime(2023, 1, 1, tzinfo=UTC),
    )
    return Found(metadata, logo_body)
