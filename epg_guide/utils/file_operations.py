"""
File operation utilities

This module handles reading guide files, gzip decompression and byte decoding.
"""
import logging
import zlib
from pathlib import Path

import aiofiles

from epg_guide.errors import DecodeError


logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"
DECOMPRESS_CHUNK_SIZE = 64 * 1024


async def read_file_bytes(file_path: Path | str) -> bytes:
    """
    Read a whole file without blocking the event loop

    Raises:
        FileNotFoundError: If file doesn't exist
        OSError: If file can't be read
    """
    async with aiofiles.open(file_path, 'rb') as f:
        data = await f.read()
    logger.debug(f"Read {len(data) / 1024 / 1024:.2f} MB from {file_path}")
    return data


def is_gzip_payload(data: bytes) -> bool:
    return data[:2] == GZIP_MAGIC


def gunzip_bytes(data: bytes, chunk_size: int = DECOMPRESS_CHUNK_SIZE) -> bytes:
    """
    Decompress gzip data chunk by chunk, following concatenated members

    Raises:
        DecodeError: If the data is not valid gzip or the stream is truncated
    """
    if not data:
        raise DecodeError("Empty gzip payload")

    output: list[bytes] = []
    remaining = data

    try:
        while remaining.strip(b"\x00"):
            decompressor = zlib.decompressobj(16 + zlib.MAX_WBITS)
            consumed = len(remaining)
            for start in range(0, len(remaining), chunk_size):
                output.append(decompressor.decompress(remaining[start:start + chunk_size]))
                if decompressor.eof:
                    consumed = start + chunk_size
                    break
            output.append(decompressor.flush())

            if not decompressor.eof:
                raise DecodeError("Gzip stream is truncated")

            remaining = decompressor.unused_data + remaining[consumed:]
    except zlib.error as e:
        raise DecodeError(f"Invalid gzip data: {e}") from e

    result = b"".join(output)
    logger.debug(f"Decompressed {len(data)} bytes to {len(result)} bytes")
    return result


def decode_text(data: bytes, encoding: str | None = None) -> str:
    """Decode guide bytes, dropping a UTF-8 BOM and replacing undecodable bytes"""
    codec = encoding or "utf-8-sig"
    try:
        return data.decode(codec, errors="replace")
    except LookupError:
        logger.warning(f"Unknown text encoding '{encoding}', falling back to UTF-8")
        return data.decode("utf-8-sig", errors="replace")


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        return url
    except (ValueError, IndexError):
        return url
