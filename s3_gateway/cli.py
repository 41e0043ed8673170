"""Command line entry point for the S3 gateway."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn
from pydantic import ValidationError

from .app import create_app
from .settings import load_settings_from_env

LOG = logging.getLogger("s3_gateway")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="s3-gateway",
        description="Serve the objects of one S3 bucket over plain HTTP",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to (overrides S3PROXY_HOST)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (overrides S3PROXY_PORT, default: 8080)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides S3PROXY_LOG_LEVEL, default: INFO)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Load settings, build the application and serve it with uvicorn.

    Exits with status 1 when the environment does not describe a usable
    bucket (``AWS_REGION`` and ``S3PROXY_S3_BUCKET`` are required).
    """
    args = parse_args(argv)

    try:
        settings = load_settings_from_env()
    except ValidationError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    overrides = {
        name: value
        for name, value in (
            ("host", args.host),
            ("port", args.port),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    LOG.info(
        "starting S3 gateway on %s:%d (bucket=%s)",
        settings.host,
        settings.port,
        settings.bucket,
    )

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
