from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import TYPE_CHECKING, Any, Protocol

from anyio import to_thread
from boto3.session import Session
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .settings import GatewaySettings

LOG = logging.getLogger("s3_gateway.fetch")

NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


async def _run_sync(func: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
    return await to_thread.run_sync(partial(func, *args, **kwargs))


class ObjectBody(Protocol):
    """Readable byte stream of an object, closed by whoever owns it last."""

    def read(self, amt: int | None = None) -> bytes: ...

    def close(self) -> None: ...


@dataclass(frozen=True)
class ObjectMetadata:
    content_type: str | None = None
    content_length: int | None = None
    content_disposition: str | None = None
    last_modified: datetime | None = None

    @classmethod
    def from_result(cls, result: Mapping[str, Any]) -> ObjectMetadata:
        """Build metadata from a boto3 ``get_object`` response."""
        content_length = result.get("ContentLength")
        return cls(
            content_type=result.get("ContentType"),
            content_length=int(content_length) if content_length is not None else None,
            content_disposition=result.get("ContentDisposition"),
            last_modified=result.get("LastModified"),
        )


@dataclass
class Found:
    metadata: ObjectMetadata
    body: ObjectBody


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Failed:
    cause: Exception


FetchResult = Found | NotFound | Failed


class ObjectFetcher(Protocol):
    async def fetch(self, bucket: str, key: str) -> FetchResult: ...

    async def aclose(self) -> None: ...


class BotoObjectFetcher:
    """Fetch objects with a single long-lived boto3 S3 client.

    boto3 clients are thread-safe, so one instance serves every request; the
    blocking ``get_object`` call runs on anyio's worker threads.
    """

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_settings(cls, settings: GatewaySettings) -> BotoObjectFetcher:
        session = Session(
            aws_access_key_id=settings.access_key,
            aws_secret_access_key=settings.secret_key,
            aws_session_token=settings.session_token,
            region_name=settings.region,
        )
        client = session.client(
            "s3",
            endpoint_url=settings.endpoint_url,
            config=BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": 3},
                s3={"addressing_style": settings.addressing_style},
            ),
        )
        return cls(client)

    async def fetch(self, bucket: str, key: str) -> FetchResult:
        try:
            result = await _run_sync(self._client.get_object, Bucket=bucket, Key=key)
        except ClientError as error:
            code = error.response.get("Error", {}).get("Code")
            if code in NOT_FOUND_CODES:
                LOG.debug("object not found s3://%s/%s", bucket, key)
                return NotFound()
            LOG.warning("fetch failed for s3://%s/%s: %s", bucket, key, error)
            return Failed(error)
        except BotoCoreError as error:
            LOG.warning("fetch failed for s3://%s/%s: %s", bucket, key, error)
            return Failed(error)

        return Found(ObjectMetadata.from_result(result), result["Body"])

    async def aclose(self) -> None:
        await _run_sync(self._client.close)
