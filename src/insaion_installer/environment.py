"""
Host platform detection.

Determines the ROS distribution (or the Debian-family OS codename when no
ROS installation is present) and the package architecture of this host.
"""

from __future__ import annotations

import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path

import distro

from insaion_installer.commands import command_exists, run_command
from insaion_installer.errors import InstallerError

logger = logging.getLogger(__name__)

DEFAULT_ROS_ROOT = Path("/opt/ros")

# Kernel machine names mapped onto Debian architecture labels
ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armhf",
    "armhf": "armhf",
}

DEBIAN_FAMILY = ("ubuntu", "debian")


class PlatformDetectionError(InstallerError):
    """Raised when no supported platform can be identified."""

    exit_code = 1


@dataclass
class PlatformIdentity:
    """Normalized identity of the host the agent is installed on."""

    architecture: str
    ros_distro: str = ""
    os_id: str = ""
    codename: str = ""
    source: str = ""

    @property
    def label(self) -> str:
        """ROS distro when known, otherwise the OS codename."""
        return self.ros_distro or self.codename

    @property
    def detected(self) -> bool:
        return bool(self.label)

    @property
    def is_ros(self) -> bool:
        return bool(self.ros_distro)


class PlatformDetector:
    """Probes the environment, filesystem and OS metadata for a platform identity."""

    def __init__(self, ros_root: Path | str = DEFAULT_ROS_ROOT):
        self.ros_root = Path(ros_root)

    def detect(self, override: str | None = None) -> PlatformIdentity:
        """
        Detect the platform identity.

        Args:
            override: Explicit ROS distro; skips ROS auto-detection.

        Returns:
            PlatformIdentity with at least a label set.

        Raises:
            PlatformDetectionError: If nothing could be detected.
        """
        arch = self.detect_architecture()
        os_id, codename = self.detect_os_release()

        if override:
            ros_distro, source = override.strip().lower(), "override"
        else:
            ros_distro, source = self.detect_ros_distro()

        if not ros_distro:
            if codename and self._is_debian_family(os_id):
                source = "os-release"
            else:
                codename = ""

        identity = PlatformIdentity(
            architecture=arch,
            ros_distro=ros_distro,
            os_id=os_id,
            codename=codename,
            source=source,
        )

        if not identity.detected:
            raise PlatformDetectionError(
                "Could not detect ROS distro automatically and no --ros was provided.",
                hint="Either install /opt/ros/<distro> or pass --ros <distro> to the installer.",
            )

        logger.debug(
            f"Detected platform {identity.label} ({identity.source}) on {identity.architecture}"
        )
        return identity

    def detect_ros_distro(self) -> tuple[str, str]:
        """Return (distro, source) from ROS_DISTRO or the first /opt/ros entry."""
        env_distro = os.environ.get("ROS_DISTRO", "").strip()
        if env_distro:
            return env_distro.lower(), "environment"

        try:
            candidates = sorted(p for p in self.ros_root.iterdir() if p.is_dir())
        except OSError as e:
            logger.debug(f"Could not list {self.ros_root}: {e}")
            return "", ""

        if candidates:
            return candidates[0].name, "filesystem"
        return "", ""

    def detect_os_release(self) -> tuple[str, str]:
        """Return (os id, codename) from /etc/os-release."""
        try:
            return distro.id(), distro.codename().lower()
        except OSError as e:
            logger.debug(f"Could not read OS release metadata: {e}")
            return "", ""

    def detect_architecture(self) -> str:
        """Return the Debian architecture label for this host."""
        if command_exists("dpkg"):
            result = run_command(["dpkg", "--print-architecture"], check=False)
            arch = result.stdout.strip()
            if result.ok and arch:
                return arch

        return normalize_architecture(platform.machine())

    def _is_debian_family(self, os_id: str) -> bool:
        if os_id in DEBIAN_FAMILY:
            return True
        like = distro.like().split()
        return any(family in like for family in DEBIAN_FAMILY)


def normalize_architecture(machine: str) -> str:
    """Map a raw kernel machine name onto the package architecture vocabulary."""
    arch = ARCH_ALIASES.get(machine.lower())
    if arch is None:
        logger.warning(f"Unrecognised architecture '{machine}', using it unchanged")
        return machine
    return arch
