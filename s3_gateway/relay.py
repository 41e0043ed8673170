from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol

from botocore.exceptions import BotoCoreError

from .fetch import _run_sync

if TYPE_CHECKING:
    from .fetch import ObjectBody

LOG = logging.getLogger("s3_gateway.relay")

READ_BUFFER_SIZE = 16 * 1024


class ResponseWriter(Protocol):
    async def write(self, data: memoryview) -> int:
        """Send some prefix of ``data`` and return how many bytes were taken."""
        ...


@dataclass(frozen=True)
class Transferred:
    bytes_written: int


@dataclass(frozen=True)
class Aborted:
    stage: Literal["read", "write"]
    cause: Exception
    bytes_written: int


RelayResult = Transferred | Aborted


class ShortWriteError(OSError):
    """Raised when a writer accepts no bytes of a non-empty chunk."""


async def relay(
    body: ObjectBody, writer: ResponseWriter, *, key: str = ""
) -> RelayResult:
    """Copy ``body`` into ``writer`` and close ``body`` exactly once.

    Chunks of up to ``READ_BUFFER_SIZE`` bytes are read until the stream is
    exhausted. Each chunk is written in a loop until the writer has accepted
    all of it. The first read or write error stops the transfer; whatever was
    already sent stays sent.
    """
    written = 0
    try:
        while True:
            try:
                chunk = await _run_sync(body.read, READ_BUFFER_SIZE)
            except (BotoCoreError, OSError) as error:
                LOG.warning(
                    "relay aborted reading %s after %d bytes: %s", key, written, error
                )
                return Aborted("read", error, written)
            if not chunk:
                break

            view = memoryview(chunk)
            offset = 0
            while offset < len(view):
                try:
                    accepted = await writer.write(view[offset:])
                    if accepted <= 0:
                        msg = "response writer accepted no bytes"
                        raise ShortWriteError(msg)
                except OSError as error:
                    LOG.warning(
                        "relay aborted writing %s after %d bytes: %s",
                        key,
                        written,
                        error,
                    )
                    return Aborted("write", error, written)
                offset += accepted
                written += accepted
    finally:
        try:
            await _run_sync(body.close)
        except (BotoCoreError, OSError):
            LOG.warning("failed to close object body for %s", key, exc_info=True)

    LOG.debug("relayed %s (%d bytes)", key, written)
    return Transferred(written)
