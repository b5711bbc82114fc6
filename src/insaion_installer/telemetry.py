"""
Telemetry agent provisioning.

Adds the InfluxData APT repository, trusting its signing key only after the
key fingerprint has been verified, and installs the telemetry agent from it.
Every step is optional: failures are logged and the installation continues.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import requests

from insaion_installer.commands import CommandError, command_exists, run_command
from insaion_installer.packages import AptManager, PackageInstallError

if TYPE_CHECKING:
    from insaion_installer.config import Config

logger = logging.getLogger(__name__)

KEYRING_NAME = "influxdata-archive.gpg"
SOURCE_LIST_NAME = "influxdata.list"


def parse_fingerprints(colons_output: str) -> list[str]:
    """Extract fingerprints from ``gpg --with-colons`` output."""
    fingerprints = []
    for line in colons_output.splitlines():
        fields = line.split(":")
        if fields[0] == "fpr" and len(fields) > 9 and fields[9]:
            fingerprints.append(fields[9].upper())
    return fingerprints


class TelemetryProvisioner:
    """Sets up the signed third-party repository and installs the telemetry agent."""

    def __init__(
        self,
        config: Config,
        session: requests.Session | None = None,
        apt: AptManager | None = None,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.apt = apt or AptManager()

    @property
    def keyring_path(self) -> Path:
        return Path(self.config.keyring_dir) / KEYRING_NAME

    @property
    def source_list_path(self) -> Path:
        return Path(self.config.sources_dir) / SOURCE_LIST_NAME

    @property
    def source_line(self) -> str:
        return f"deb [signed-by={self.keyring_path}] {self.config.telemetry_repo_url} stable main"

    def provision(self, work_dir: str | Path) -> bool:
        """
        Provision the repository and install the telemetry agent.

        Args:
            work_dir: Scratch directory for the downloaded key.

        Returns:
            True if the telemetry package was installed.
        """
        if not command_exists("gpg"):
            logger.warning("Skipping optional monitoring component setup (gpg not available).")
            return False

        key_path = Path(work_dir) / "telemetry-archive.key"
        if not self._download_key(key_path):
            logger.warning("Skipping optional monitoring component setup.")
            return False

        if not self.verify_key(key_path):
            logger.warning("Skipping optional monitoring component setup (key verification failed).")
            return False

        try:
            self._install_repository(key_path)
        except (CommandError, PackageInstallError) as e:
            logger.warning(f"Skipping optional monitoring component setup: {e}")
            return False

        if not self.apt.update(check=False):
            logger.warning("Package index update failed, continuing with the cached index")

        if not self.apt.install([self.config.telemetry_package], with_recommends=True, check=False):
            logger.warning(f"Could not install {self.config.telemetry_package}")
            return False

        logger.debug(f"Installed {self.config.telemetry_package}")
        return True

    def verify_key(self, key_path: str | Path) -> bool:
        """Return True if the key file carries the expected fingerprint."""
        result = run_command(
            ["gpg", "--show-keys", "--with-fingerprint", "--with-colons", str(key_path)],
            check=False,
        )
        expected = self.config.telemetry_fingerprint.replace(" ", "").upper()
        found = parse_fingerprints(result.stdout)
        if expected not in found:
            logger.debug(f"Key fingerprints {found} do not include {expected}")
            return False
        return True

    def _download_key(self, key_path: Path) -> bool:
        try:
            response = self.session.get(
                self.config.telemetry_key_url, timeout=self.config.http_timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.debug(f"Key download failed: {e}")
            return False

        if not response.content:
            return False
        key_path.write_bytes(response.content)
        return True

    def _install_repository(self, key_path: Path) -> None:
        self.apt.ensure_directory(self.config.keyring_dir)
        run_command(
            ["gpg", "--batch", "--yes", "--dearmor", "-o", str(self.keyring_path)],
            privileged=True,
            input_data=key_path.read_bytes(),
        )
        run_command(["chmod", "0644", str(self.keyring_path)], check=False, privileged=True)
        run_command(
            ["tee", str(self.source_list_path)],
            privileged=True,
            input_data=f"{self.source_line}\n".encode(),
        )
