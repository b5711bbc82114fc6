"""
Release metadata client.

Resolves the symbolic ``latest`` release to a concrete tag and lists the
assets attached to a release.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import requests

from insaion_installer.errors import InstallerError

if TYPE_CHECKING:
    from insaion_installer.config import Config

logger = logging.getLogger(__name__)

LATEST = "latest"
GITHUB_API_ACCEPT = "application/vnd.github+json"


class ReleaseResolutionError(InstallerError):
    """Raised when the latest release tag cannot be determined."""

    exit_code = 2


class ReleaseMetadataError(InstallerError):
    """Raised when release metadata cannot be fetched or parsed."""

    exit_code = 2


@dataclass
class ReleaseAsset:
    """A downloadable file attached to a release."""

    name: str
    download_url: str = ""
    size: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> ReleaseAsset:
        return cls(
            name=str(data.get("name", "")),
            download_url=str(data.get("browser_download_url", "")),
            size=int(data.get("size") or 0),
        )


class ReleaseClient:
    """
    Talks to the GitHub Releases API for the configured repository.

    Supports:
    - Token authentication (GITHUB_TOKEN)
    - Redirect-based fallback for resolving the latest tag
    """

    def __init__(self, config: Config, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": f"insaion-installer/{self._get_version()}"})

    @property
    def api_base(self) -> str:
        return f"{self.config.api_url.rstrip('/')}/repos/{self.config.repo_slug}"

    def resolve_tag(self, tag: str = LATEST) -> str:
        """
        Resolve a release tag.

        Args:
            tag: Tag name, or "latest" to look up the newest release.

        Returns:
            The concrete tag name.

        Raises:
            ReleaseResolutionError: If neither the API nor the redirect
                fallback produced a tag.
        """
        if tag != LATEST:
            return tag

        resolved = self._latest_from_api()
        if resolved:
            return resolved

        logger.debug("Release API lookup failed, falling back to redirect resolution")
        resolved = self._latest_from_redirect()
        if resolved:
            return resolved

        raise ReleaseResolutionError(
            f"Unable to resolve the latest release of {self.config.repo_slug}"
        )

    def list_assets(self, tag: str) -> list[ReleaseAsset]:
        """
        List the assets attached to a release.

        Raises:
            ReleaseMetadataError: If the metadata is unavailable or empty.
        """
        url = f"{self.api_base}/releases/tags/{tag}"
        try:
            response = self.session.get(
                url, headers=self._api_headers(), timeout=self.config.http_timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise ReleaseMetadataError(f"Release metadata request failed: {e}") from e
        except ValueError as e:
            raise ReleaseMetadataError(f"Invalid release metadata: {e}") from e

        if not isinstance(data, dict) or not data:
            raise ReleaseMetadataError(f"Empty release metadata for tag {tag}")

        assets = [ReleaseAsset.from_api(a) for a in data.get("assets") or [] if isinstance(a, dict)]
        logger.debug(f"Release {tag} has {len(assets)} assets")
        return assets

    def _latest_from_api(self) -> str | None:
        url = f"{self.api_base}/releases/latest"
        try:
            response = self.session.get(
                url, headers=self._api_headers(), timeout=self.config.http_timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.debug(f"Latest release API request failed: {e}")
            return None
        except ValueError:
            logger.debug("Latest release API returned invalid JSON")
            return None

        tag_name = data.get("tag_name") if isinstance(data, dict) else None
        if isinstance(tag_name, str) and tag_name:
            return tag_name
        return None

    def _latest_from_redirect(self) -> str | None:
        url = f"{self.config.web_url.rstrip('/')}/{self.config.repo_slug}/releases/latest"
        try:
            response = self.session.head(
                url, allow_redirects=True, timeout=self.config.http_timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.debug(f"Latest release redirect failed: {e}")
            return None

        final_url = str(response.url).rstrip("/")
        tag = final_url.rsplit("/", 1)[-1]
        # No redirect means GitHub has no published release
        if not tag or tag == LATEST:
            return None
        return tag

    def _api_headers(self) -> dict[str, str]:
        """Headers for API requests only; web and download requests go without them."""
        headers = {"Accept": GITHUB_API_ACCEPT}
        headers.update(self._auth_headers())
        return headers

    def _auth_headers(self) -> dict[str, str]:
        if self.config.github_token:
            return {"Authorization": f"token {self.config.github_token}"}
        return {}

    def _get_version(self) -> str:
        try:
            from insaion_installer import __version__

            return __version__
        except ImportError:
            return "unknown"
