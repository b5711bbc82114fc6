"""
Core orchestration module for the installer.

Runs detection, release resolution, download and package installation in
sequence.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from typing import Any, Callable

import requests

from insaion_installer.assets import find_asset
from insaion_installer.config import Config
from insaion_installer.download import asset_url, download_asset
from insaion_installer.environment import PlatformDetector, PlatformIdentity
from insaion_installer.packages import AptManager
from insaion_installer.releases import LATEST, ReleaseClient, ReleaseResolutionError
from insaion_installer.telemetry import TelemetryProvisioner

logger = logging.getLogger(__name__)

DEB_FILENAME = "agent.deb"


@dataclass
class InstallReport:
    """Outcome of an installation run."""

    identity: PlatformIdentity
    tag: str = ""
    asset_name: str = ""
    download_url: str = ""
    telemetry_installed: bool = False
    dependencies_repaired: bool = False
    work_dir: str = ""
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "platform": {
                "label": self.identity.label,
                "ros_distro": self.identity.ros_distro,
                "os_id": self.identity.os_id,
                "codename": self.identity.codename,
                "architecture": self.identity.architecture,
                "source": self.identity.source,
            },
            "release": {
                "tag": self.tag,
                "asset": self.asset_name,
                "url": self.download_url,
            },
            "telemetry_installed": self.telemetry_installed,
            "dependencies_repaired": self.dependencies_repaired,
            "warnings": self.warnings,
        }


class Installer:
    """
    Main orchestrator for installing the agent.

    Each step reports progress through the optional ``on_step`` callback so
    the CLI can render it.
    """

    def __init__(
        self,
        config: Config | None = None,
        session: requests.Session | None = None,
        detector: PlatformDetector | None = None,
        apt: AptManager | None = None,
        on_step: Callable[[str], None] | None = None,
    ):
        self.config = config or Config()
        self.session = session or requests.Session()
        self.detector = detector or PlatformDetector()
        self.apt = apt or AptManager()
        self.releases = ReleaseClient(self.config, self.session)
        self.telemetry = TelemetryProvisioner(self.config, self.session, self.apt)
        self.on_step = on_step or (lambda message: None)

    def detect(self, ros_override: str | None = None) -> PlatformIdentity:
        """Detect the platform, honouring an explicit or configured override."""
        return self.detector.detect(ros_override or self.config.ros_distro)

    def resolve_tag(self) -> str:
        """Resolve the configured tag, keeping the literal on failure."""
        tag = self.config.release_tag or LATEST
        try:
            return self.releases.resolve_tag(tag)
        except ReleaseResolutionError as e:
            logger.debug(f"{e}; continuing with '{tag}'")
            return tag

    def install(
        self,
        ros_override: str | None = None,
        base_url: str | None = None,
        telemetry: bool | None = None,
    ) -> InstallReport:
        """
        Run the full installation.

        Args:
            ros_override: ROS distro to use instead of auto-detection.
            base_url: Override for the asset download base URL.
            telemetry: Override for config.telemetry_enabled.

        Returns:
            InstallReport describing what was installed.

        Raises:
            InstallerError: On any fatal failure. The temporary working
                directory is removed before the exception propagates.
        """
        identity = self.detect(ros_override)
        if identity.is_ros:
            self.on_step(f"Using ROS distribution: {identity.ros_distro}")
        else:
            self.on_step(f"Using OS release: {identity.os_id} {identity.codename}")
        self.on_step(f"Detected system architecture: {identity.architecture}")

        report = InstallReport(identity=identity)
        report.tag = self.resolve_tag()
        logger.info(f"Installing release {report.tag}")

        with tempfile.TemporaryDirectory(prefix="insaion-agent-") as work_dir:
            report.work_dir = work_dir

            asset = find_asset(self.releases.list_assets(report.tag), identity)
            report.asset_name = asset.name
            report.download_url = asset_url(base_url or self.config.base_url, report.tag, asset.name)

            self.on_step("Downloading agent...")
            deb_path = download_asset(
                self.session,
                report.download_url,
                f"{work_dir}/{DEB_FILENAME}",
                timeout=self.config.http_timeout,
            )

            self.on_step("Installing agent...")
            self.on_step("Installing prerequisites...")
            if not self.apt.install_prerequisites():
                report.warnings.append("Prerequisite installation was incomplete")

            telemetry_enabled = self.config.telemetry_enabled if telemetry is None else telemetry
            if telemetry_enabled:
                report.telemetry_installed = self.telemetry.provision(work_dir)
                if not report.telemetry_installed:
                    report.warnings.append("Optional monitoring component was not installed")

            report.dependencies_repaired = self.apt.install_deb(deb_path)

        self.apt.ensure_directory(self.config.runtime_dir)
        return report
