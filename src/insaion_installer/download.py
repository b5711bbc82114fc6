"""
Asset download.
"""

from __future__ import annotations

import logging
from pathlib import Path

import requests

from insaion_installer.errors import InstallerError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class DownloadError(InstallerError):
    """Raised when an asset cannot be downloaded."""

    exit_code = 2


def asset_url(base_url: str, tag: str, asset_name: str) -> str:
    """Build the download URL for an asset of a release."""
    return f"{base_url.rstrip('/')}/{tag}/{asset_name}"


def download_asset(
    session: requests.Session,
    url: str,
    dest: str | Path,
    timeout: int = 30,
) -> Path:
    """
    Stream a file to dest.

    Args:
        session: HTTP session to use.
        url: Source URL.
        dest: Destination file path.
        timeout: Connect/read timeout in seconds.

    Returns:
        The destination path.

    Raises:
        DownloadError: On HTTP or network failure, or if nothing was written.
    """
    dest = Path(dest)
    logger.debug(f"Downloading {url} -> {dest}")

    try:
        with session.get(url, stream=True, timeout=timeout, allow_redirects=True) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except requests.exceptions.RequestException as e:
        raise DownloadError(f"Unable to download the agent for this system: {e}") from e
    except OSError as e:
        raise DownloadError(f"Unable to write {dest}: {e}") from e

    if not dest.exists() or dest.stat().st_size == 0:
        raise DownloadError("Unable to download the agent for this system.")

    logger.debug(f"Downloaded {dest.stat().st_size} bytes")
    return dest
