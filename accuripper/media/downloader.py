"""
Handles the low-level side of downloads: opening media links as byte streams
and copying a stream verbatim to disk.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Protocol

import aiofiles
import aiohttp

from accuripper.api.client import CatalogClient
from accuripper.exceptions import ByteSourceError

log = logging.getLogger(__name__)

CHUNK_SIZE = 262144  # 256 KB


class ByteStream(Protocol):
    """An open media stream. ``close`` must be called exactly once."""

    def iter_chunks(self) -> AsyncIterator[bytes]: ...

    async def close(self) -> None: ...


class ByteSource(Protocol):
    """Opens media links. Raises ``ByteSourceError`` on any failure."""

    async def open(self, link: str) -> ByteStream: ...


class HttpByteStream:
    """A streaming aiohttp response exposed as a ByteStream."""

    def __init__(self, response: aiohttp.ClientResponse, chunk_size: int = CHUNK_SIZE):
        self._response = response
        self._chunk_size = chunk_size

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.content.iter_chunked(self._chunk_size):
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ByteSourceError(f"read {self._response.url}: {e}") from e

    async def close(self) -> None:
        self._response.release()


class HttpByteSource:
    """Opens media links over the shared catalog session."""

    def __init__(self, client: CatalogClient):
        self.client = client

    async def open(self, link: str) -> HttpByteStream:
        try:
            response = await self.client.open_response(link)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ByteSourceError(f"download file {link}: {e}") from e
        if response.status // 100 != 2:
            response.release()
            raise ByteSourceError(
                f"download file {link}: response status not ok: "
                f"{response.status} {response.reason}"
            )
        return HttpByteStream(response)


async def write_stream(stream: ByteStream, destination: Path) -> int:
    """
    Copies a stream to ``destination`` and returns the number of bytes written.
    The file is created (or truncated) only when this is called.
    """
    bytes_written = 0
    async with aiofiles.open(destination, "wb") as f:
        async for chunk in stream.iter_chunks():
            await f.write(chunk)
            bytes_written += len(chunk)
    return bytes_written
