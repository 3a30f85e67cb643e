"""
Guide Loader

Acquires raw guide text from a URL (cancellable) or from a binary blob
(gzip-aware). Decompression runs in the default executor so large guides do
not stall the event loop.
"""
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

import httpx

from epg_guide.errors import DecodeError, NetworkError
from epg_guide.utils.file_operations import (
    decode_text,
    gunzip_bytes,
    is_gzip_payload,
    read_file_bytes,
    sanitize_url_for_logging,
)


logger = logging.getLogger(__name__)

GZIP_MEDIA_TYPES = frozenset({"application/gzip", "application/x-gzip"})
DEFAULT_TIMEOUT = 120.0


@dataclass(frozen=True, slots=True)
class GuideBlob:
    """Raw guide bytes with the hints needed to decode them."""
    data: bytes
    name: str | None = None
    media_type: str | None = None

    @property
    def is_gzip(self) -> bool:
        if self.name and self.name.lower().endswith(".gz"):
            return True
        media_type = (self.media_type or "").split(";", 1)[0].strip().lower()
        return media_type in GZIP_MEDIA_TYPES


async def load_from_url(
    url: str,
    cancel_event: asyncio.Event | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """
    Download guide text from a URL

    Bodies that are still gzip-framed (e.g. '.xml.gz' served without
    Content-Encoding) are decompressed.

    Args:
        url: Guide URL
        cancel_event: Setting this event abandons the request
        client: Optional shared httpx client (a private one is created otherwise)
        timeout: HTTP timeout in seconds for a private client

    Returns:
        Decoded guide text

    Raises:
        NetworkError: If the request fails, returns a non-success status or is cancelled
        DecodeError: If a gzip-framed body cannot be decompressed
    """
    safe_url = sanitize_url_for_logging(url)
    logger.info(f"Downloading guide from {safe_url}...")

    fetch_task = asyncio.create_task(_fetch(url, client, timeout))
    cancel_task = asyncio.create_task(cancel_event.wait()) if cancel_event else None

    try:
        if cancel_task is None:
            response = await fetch_task
        else:
            await asyncio.wait({fetch_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
            if cancel_event.is_set():
                logger.warning(f"Guide download cancelled: {safe_url}")
                raise NetworkError(f"Guide download cancelled: {safe_url}", cancelled=True)
            response = fetch_task.result()
    finally:
        for task in (fetch_task, cancel_task):
            if task is not None and not task.done():
                task.cancel()
        await asyncio.gather(
            *(task for task in (fetch_task, cancel_task) if task is not None),
            return_exceptions=True,
        )

    content = response.content
    logger.info(f"Downloaded {len(content) / (1024 * 1024):.2f} MB from {safe_url}")

    if is_gzip_payload(content):
        data = await _gunzip_async(content)
        return decode_text(data)

    return response.text


async def load_from_blob(blob: GuideBlob) -> str:
    """
    Decode a guide blob, decompressing it first when it is marked as gzip

    Raises:
        DecodeError: If decompression fails (no fallback to raw bytes)
    """
    if blob.is_gzip:
        logger.debug(f"Decompressing gzip guide blob {blob.name or '<unnamed>'} ({len(blob.data)} bytes)")
        return decode_text(await _gunzip_async(blob.data))
    return decode_text(blob.data)


async def load_from_file(file_path: Path | str, media_type: str | None = None) -> str:
    """Read a guide file from disk and decode it like a blob"""
    path = Path(file_path)
    logger.info(f"Loading guide file: {path}")
    data = await read_file_bytes(path)
    return await load_from_blob(GuideBlob(data=data, name=path.name, media_type=media_type))


async def _fetch(url: str, client: httpx.AsyncClient | None, timeout: float) -> httpx.Response:
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as own_client:
                response = await own_client.get(url)
        else:
            response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.error(f"Guide download failed: HTTP {status}")
        raise NetworkError(f"Failed to fetch guide: HTTP {status}", status_code=status) from e
    except httpx.HTTPError as e:
        logger.error(f"Guide download failed: {type(e).__name__}: {e}")
        raise NetworkError(f"Failed to fetch guide: {type(e).__name__}") from e
    return response


async def _gunzip_async(data: bytes) -> bytes:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, gunzip_bytes, data)
    except DecodeError as e:
        logger.error(f"Guide decompression failed: {e}")
        raise
