"""Abortable streaming downloads."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable

import httpx

from watchnight.task import AbortSignal

logger = logging.getLogger(__name__)

Downloader = Callable[[str, Path, AbortSignal], Awaitable[int]]


async def download_file(
    url: str,
    dest: Path,
    signal: AbortSignal,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = 60.0,
    chunk_size: int = 65536,
) -> int:
    """
    Stream ``url`` into ``dest``.

    The whole transfer runs under ``signal.guard()``, so aborting the signal
    interrupts a pending read instead of waiting for the next chunk. A partial
    file is removed on any failure.

    Args:
        url: Resource to fetch.
        dest: File to write. Overwritten if it exists.
        signal: Cancellation token for the transfer.
        client: Optional client to reuse (tests pass one with a mock transport).
        timeout: Per-operation timeout in seconds when creating a client.
        chunk_size: Read size in bytes.

    Returns:
        Number of bytes written.

    Raises:
        TaskCancelled: The signal fired before the transfer finished.
        httpx.HTTPStatusError: The server answered with an error status.
    """
    dest = Path(dest)

    async def fetch(http: httpx.AsyncClient) -> int:
        written = 0
        async with http.stream("GET", url, follow_redirects=True) as resp:
            resp.raise_for_status()
            with dest.open("wb") as fh:
                async for chunk in resp.aiter_bytes(chunk_size):
                    fh.write(chunk)
                    written += len(chunk)
        return written

    logger.debug("Downloading %s -> %s", url, dest)
    try:
        if client is not None:
            written = await signal.guard(fetch(client))
        else:
            async with httpx.AsyncClient(timeout=timeout) as http:
                written = await signal.guard(fetch(http))
    except BaseException:
        dest.unlink(missing_ok=True)
        raise

    logger.debug("Downloaded %d bytes from %s", written, url)
    return written
