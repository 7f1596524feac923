"""
Resolution of audio references to raw bytes.

Supports base64 / percent-encoded ``data:`` URLs, ``http(s)://`` URLs fetched
with httpx, ``file://`` URLs and plain filesystem paths.
"""

import asyncio
import base64
import binascii
import logging
from pathlib import Path
from urllib.parse import unquote, unquote_to_bytes, urlparse

import httpx


logger = logging.getLogger(__name__)


class AudioSourceError(ValueError):
    """Raised when an audio reference cannot be resolved to bytes."""


def decode_data_url(data_url: str) -> bytes:
    """Decode a ``data:[<mediatype>][;base64],<data>`` URL.

    Args:
        data_url: The data URL.

    Returns:
        Decoded payload bytes.

    Raises:
        AudioSourceError: If the URL is malformed.
    """
    if not data_url.startswith("data:"):
        raise AudioSourceError("Not a data URL")

    header, sep, payload = data_url[5:].partition(",")
    if not sep:
        raise AudioSourceError("Malformed data URL: missing ',' separator")

    params = [p.strip().lower() for p in header.split(";")]
    if "base64" in params:
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise AudioSourceError(f"Invalid base64 payload in data URL: {e}") from e

    return unquote_to_bytes(payload)


async def fetch_url(url: str, timeout: float = 30.0) -> bytes:
    """Download ``url`` with httpx.

    Raises:
        AudioSourceError: On transport errors or non-2xx responses.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise AudioSourceError(f"Could not fetch {url}: {e}") from e

    logger.debug(f"Fetched {len(response.content)} bytes from {url}")
    return response.content


async def read_path(path: Path) -> bytes:
    """Read a local file without blocking the event loop.

    Raises:
        AudioSourceError: If the file cannot be read.
    """
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise AudioSourceError(f"Could not read {path}: {e}") from e


async def resolve_reference(
    reference: str,
    timeout: float = 30.0,
    allow_local: bool = True,
) -> bytes:
    """Resolve any supported audio reference to bytes.

    Args:
        reference: data URL, http(s) URL, file URL or filesystem path.
        timeout: HTTP timeout in seconds.
        allow_local: Accept file URLs and filesystem paths. Disable for
            references supplied by remote clients.

    Returns:
        Raw audio bytes.

    Raises:
        AudioSourceError: If the reference cannot be resolved.
    """
    if not reference:
        raise AudioSourceError("Empty audio reference")

    if reference.startswith("data:"):
        return decode_data_url(reference)

    parsed = urlparse(reference)
    if parsed.scheme in ("http", "https"):
        return await fetch_url(reference, timeout=timeout)

    if not allow_local:
        raise AudioSourceError("Only data: and http(s):// references are accepted")

    if parsed.scheme == "file":
        return await read_path(Path(unquote(parsed.path)))

    return await read_path(Path(reference))
