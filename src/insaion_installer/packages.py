"""
APT and dpkg operations.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from insaion_installer.commands import APT_ENV, CommandError, command_exists, run_command
from insaion_installer.errors import InstallerError

logger = logging.getLogger(__name__)

PREREQUISITE_PACKAGES = [
    "curl",
    "wget",
    "ca-certificates",
    "gnupg",
    "lsb-release",
    "apt-transport-https",
    "jq",
    "gettext-base",
]


class PackageInstallError(InstallerError):
    """Raised when the agent package cannot be installed."""

    exit_code = 3


class AptManager:
    """Thin wrapper over apt-get and dpkg."""

    def update(self, *, check: bool = True) -> bool:
        result = run_command(
            ["apt-get", "-qq", "update", "-y"], check=check, privileged=True, env=APT_ENV
        )
        return result.ok

    def install(
        self,
        packages: Sequence[str],
        *,
        with_recommends: bool = False,
        check: bool = True,
    ) -> bool:
        if not packages:
            return True
        argv = ["apt-get", "-qq", "install", "-y"]
        if not with_recommends:
            argv.append("--no-install-recommends")
        result = run_command([*argv, *packages], check=check, privileged=True, env=APT_ENV)
        return result.ok

    def install_prerequisites(self, packages: Sequence[str] = PREREQUISITE_PACKAGES) -> bool:
        """
        Install the tools the installer relies on.

        Failures are logged and reported through the return value; the
        caller decides whether to continue.
        """
        if not command_exists("apt-get"):
            logger.warning("apt-get not found; skipping prerequisite installation")
            return False

        if not self.update(check=False):
            logger.warning("Package index update failed, continuing with the cached index")

        if not self.install(packages, check=False):
            logger.warning("Some prerequisite packages could not be installed")
            return False
        return True

    def install_deb(self, path: str | Path) -> bool:
        """
        Install a local .deb, repairing missing dependencies once on failure.

        Returns:
            True if the dependency repair path was taken.

        Raises:
            PackageInstallError: If dpkg is missing or the repair step fails.
        """
        if not command_exists("dpkg"):
            raise PackageInstallError(
                "dpkg is not available on this system.",
                hint="The agent is distributed as a Debian package.",
            )

        path = str(path)
        first = run_command(["dpkg", "-i", path], check=False, privileged=True, env=APT_ENV)
        if first.ok:
            return False

        logger.info("Resolving dependencies...")
        try:
            run_command(
                ["apt-get", "-qq", "install", "-f", "-y"], privileged=True, env=APT_ENV
            )
        except CommandError as e:
            raise PackageInstallError(f"Dependency resolution failed: {e.result.stderr.strip()}") from e

        retry = run_command(["dpkg", "-i", path], check=False, privileged=True, env=APT_ENV)
        if not retry.ok:
            logger.warning(f"dpkg reported errors on retry: {retry.stderr.strip()}")
        return True

    def ensure_directory(self, path: str | Path) -> None:
        """Create a directory as root if it does not exist."""
        try:
            run_command(["mkdir", "-p", str(path)], privileged=True)
        except CommandError as e:
            raise PackageInstallError(f"Unable to create {path}: {e.result.stderr.strip()}") from e
