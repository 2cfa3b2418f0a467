"""
Archive download.

Fetches the GPX archive over HTTP when it is not on disk yet.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import httpx

from .exceptions import ArchiveError

logger = logging.getLogger(__name__)

USER_AGENT = "MyTracks-API/1.0"
CHUNK_SIZE = 1024 * 1024


async def download_file(
    url: str,
    path: str,
    timeout: float = 600.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """
    Stream a URL to a file.

    The body goes to `<path>.part` first and is renamed on success, so a
    failed download never leaves a truncated archive behind.

    Returns:
        Number of bytes written

    Raises:
        ArchiveError: On HTTP or filesystem errors
    """
    target = Path(path)
    partial = target.with_name(target.name + ".part")
    target.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Downloading {url} to {target}...")
    written = 0
    try:
        async with httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=transport,
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(partial, "wb") as out:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        out.write(chunk)
                        written += len(chunk)
        os.replace(partial, target)
    except (httpx.HTTPError, OSError) as e:
        partial.unlink(missing_ok=True)
        raise ArchiveError(f"Failed to download archive from {url}: {e}") from e

    logger.info(f"Downloaded {written} bytes to {target}")
    return written


async def ensure_archive(
    path: str,
    url: Optional[str],
    timeout: float = 600.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:
    """
    Make sure the archive exists locally.

    Returns:
        True if a download happened, False if the file was already there
        or no URL is configured

    Raises:
        ArchiveError: If the download fails
    """
    if os.path.exists(path):
        logger.info(f"GPX archive already exists at {path}")
        return False

    if not url:
        logger.warning(f"GPX archive not found at {path} and no download URL configured")
        return False

    logger.info("GPX archive not found locally, downloading...")
    await download_file(url, path, timeout=timeout, transport=transport)
    return True
