from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError

from .fetch import Failed, NotFound, _run_sync
from .relay import relay

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .fetch import ObjectBody, ObjectFetcher, ObjectMetadata
    from .relay import RelayResult, ResponseWriter
    from .settings import GatewaySettings

LOG = logging.getLogger("s3_gateway.gateway")

# Objects this large are served as downloads unless they carry their own
# Content-Disposition.
ATTACHMENT_THRESHOLD = 50 * 1024 * 1024


class Conditional(enum.Enum):
    PROCEED = "proceed"
    NOT_MODIFIED = "not-modified"


@dataclass
class ProxyResponse:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: ObjectBody | None = None


def route(path: str) -> str | None:
    """Return the object key for ``path``, or ``None`` for the root path."""
    if path == "/":
        return None
    return path


def _as_utc(value: datetime) -> datetime:
    aware = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    return aware.astimezone(UTC)


def parse_http_date(value: str) -> datetime | None:
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return _as_utc(parsed)


def format_http_date(value: datetime) -> str:
    return format_datetime(_as_utc(value), usegmt=True)


def evaluate_conditional(
    last_modified: datetime | None, if_modified_since: str | None
) -> Conditional:
    """Decide whether the client's cached copy is still current.

    HTTP dates carry whole seconds, so the object time is truncated before
    comparing. Malformed client dates are ignored.
    """
    if last_modified is None or not if_modified_since:
        return Conditional.PROCEED
    client_time = parse_http_date(if_modified_since)
    if client_time is None:
        return Conditional.PROCEED
    object_time = _as_utc(last_modified).replace(microsecond=0)
    if client_time >= object_time:
        return Conditional.NOT_MODIFIED
    return Conditional.PROCEED


def synthesize_headers(metadata: ObjectMetadata) -> dict[str, str]:
    headers: dict[str, str] = {}
    if metadata.content_type is not None:
        headers["content-type"] = metadata.content_type
    if metadata.content_length is not None:
        headers["content-length"] = str(metadata.content_length)
    if metadata.content_disposition is not None:
        headers["content-disposition"] = metadata.content_disposition
    elif (
        metadata.content_length is not None
        and metadata.content_length >= ATTACHMENT_THRESHOLD
    ):
        headers["content-disposition"] = "attachment"
    if metadata.last_modified is not None:
        headers["last-modified"] = format_http_date(metadata.last_modified)
    return headers


class S3Gateway:
    """Serve objects of one bucket, keyed by the raw request path.

    The request method is never inspected: every method is answered as if it
    were a GET.
    """

    def __init__(self, settings: GatewaySettings, fetcher: ObjectFetcher):
        self._settings = settings
        self._fetcher = fetcher

    @property
    def settings(self) -> GatewaySettings:
        return self._settings

    async def startup(self) -> None:
        LOG.info(
            "S3 gateway ready (bucket=%s, endpoint=%s)",
            self._settings.bucket,
            self._settings.endpoint_url,
        )

    async def shutdown(self) -> None:
        await self._fetcher.aclose()

    async def handle(self, path: str, headers: Mapping[str, str]) -> ProxyResponse:
        key = route(path)
        if key is None:
            LOG.debug("rejected root path")
            return ProxyResponse(status_code=404)

        result = await self._fetcher.fetch(self._settings.bucket, key)
        if isinstance(result, NotFound):
            return ProxyResponse(status_code=404)
        if isinstance(result, Failed):
            LOG.warning(
                "responding 502 for key %s (bucket %s): %s",
                key,
                self._settings.bucket,
                result.cause,
            )
            return ProxyResponse(status_code=502)

        metadata = result.metadata
        if_modified_since = headers.get("if-modified-since")
        condition = evaluate_conditional(metadata.last_modified, if_modified_since)
        if condition is Conditional.NOT_MODIFIED:
            await _close_body(result.body, key)
            not_modified_headers: dict[str, str] = {}
            if metadata.last_modified is not None:
                not_modified_headers["last-modified"] = format_http_date(
                    metadata.last_modified
                )
            LOG.debug("not modified %s since %s", key, if_modified_since)
            return ProxyResponse(status_code=304, headers=not_modified_headers)

        return ProxyResponse(
            status_code=200,
            headers=synthesize_headers(metadata),
            body=result.body,
        )

    async def stream(
        self, response: ProxyResponse, writer: ResponseWriter, key: str = ""
    ) -> RelayResult | None:
        """Relay the body of ``response``, if any, into ``writer``."""
        if response.body is None:
            return None
        body, response.body = response.body, None
        return await relay(body, writer, key=key)

    async def release(self, response: ProxyResponse, key: str = "") -> None:
        """Close the body of a response that will not be relayed."""
        if response.body is None:
            return
        body, response.body = response.body, None
        await _close_body(body, key)


async def _close_body(body: ObjectBody, key: str) -> None:
    try:
        await _run_sync(body.close)
    except (BotoCoreError, OSError):
        LOG.warning("failed to close object body for %s", key, exc_info=True)
