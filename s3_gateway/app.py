from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import unquote

from litestar import Litestar, Request, get
from litestar.config.cors import CORSConfig
from litestar.enums import MediaType
from litestar.handlers import asgi
from litestar.plugins.prometheus import PrometheusConfig, PrometheusController
from litestar.response import Response

from .fetch import BotoObjectFetcher
from .gateway import S3Gateway
from .relay import Transferred
from .settings import load_settings_from_env

if TYPE_CHECKING:
    from collections.abc import Mapping

    from litestar.types import Receive, Scope, Send

    from .fetch import ObjectFetcher
    from .settings import GatewaySettings

LOG = logging.getLogger("s3_gateway.app")

prometheus_config = PrometheusConfig(app_name="s3_gateway", prefix="s3_gateway")


class GatewayMetricsController(PrometheusController):
    path = "/_gateway/metrics"


def request_path(scope: Scope) -> str:
    """Return the request path as the client sent it, percent-decoded.

    Litestar rewrites ``scope["path"]`` for mounted handlers, so the key is
    taken from ``raw_path`` whenever the server provides it.
    """
    raw_path = scope.get("raw_path")
    if raw_path:
        path = unquote(raw_path.split(b"?", 1)[0].decode("latin-1"))
    else:
        path = scope.get("path", "/")
    if not path.startswith("/"):
        path = f"/{path}"
    return path


def _encode_header_value(value: str) -> bytes:
    # botocore decodes response headers as latin-1, so this round-trips the
    # bytes S3 sent; anything else goes out as UTF-8.
    try:
        return value.encode("latin-1")
    except UnicodeEncodeError:
        return value.encode("utf-8")


class ASGIResponseWriter:
    """Write a streamed response body through an ASGI ``send`` callable."""

    def __init__(self, send: Send):
        self._send = send

    async def start(self, status_code: int, headers: Mapping[str, str]) -> None:
        await self._send(
            {
                "type": "http.response.start",
                "status": status_code,
                "headers": [
                    (name.encode("latin-1"), _encode_header_value(value))
                    for name, value in headers.items()
                ],
            }
        )

    async def write(self, data: memoryview) -> int:
        await self._send(
            {"type": "http.response.body", "body": bytes(data), "more_body": True}
        )
        return len(data)

    async def finish(self) -> None:
        await self._send(
            {"type": "http.response.body", "body": b"", "more_body": False}
        )


def create_app(
    settings: GatewaySettings | None = None,
    fetcher: ObjectFetcher | None = None,
) -> Litestar:
    """Create the gateway ASGI application.

    Settings are read from the environment when not given, and the boto3
    fetcher is built from them when no fetcher is given.
    """
    if settings is None:
        settings = load_settings_from_env()
    if fetcher is None:
        fetcher = BotoObjectFetcher.from_settings(settings)
    gateway = S3Gateway(settings, fetcher)

    @get("/_gateway/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @asgi(path="/", is_mount=True, copy_scope=True)
    async def gateway_handler(scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope=scope, receive=receive)
        path = request_path(scope)
        response = await gateway.handle(path, request.headers)

        if response.body is None:
            plain = Response(
                content=b"",
                status_code=response.status_code,
                media_type=MediaType.TEXT,
                headers=response.headers,
            )
            await plain.to_asgi_response(None, request)(scope, receive, send)
            return

        writer = ASGIResponseWriter(send)
        try:
            try:
                await writer.start(response.status_code, response.headers)
            except OSError as error:
                LOG.warning("client went away before headers for %s: %s", path, error)
                return

            result = await gateway.stream(response, writer, key=path)
            if isinstance(result, Transferred):
                try:
                    await writer.finish()
                except OSError as error:
                    LOG.warning("failed to finish response for %s: %s", path, error)
        finally:
            await gateway.release(response, path)

    async def startup(app: Litestar) -> None:
        await gateway.startup()

    async def shutdown(app: Litestar) -> None:
        await gateway.shutdown()

    cors_config = CORSConfig(
        allow_origins=["*"],
        allow_methods=["GET", "HEAD"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Last-Modified"],
    )

    return Litestar(
        route_handlers=[health, gateway_handler, GatewayMetricsController],
        on_startup=[startup],
        on_shutdown=[shutdown],
        cors_config=cors_config,
        middleware=[prometheus_config.middleware],
    )
