"""
Release asset matching.

Agent packages follow one of two naming conventions:

- ROS builds: ``ros-<distro>-cpp-agent_<version>_<arch>.deb``
- Generic OS builds: ``insaion-agent_<version>_<codename>_<arch>.deb``
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

from insaion_installer.environment import PlatformIdentity
from insaion_installer.errors import InstallerError
from insaion_installer.releases import ReleaseAsset

logger = logging.getLogger(__name__)

ROS_ASSET_TEMPLATE = r"^ros-{distro}-cpp-agent_[^_]+_{arch}\.deb$"
GENERIC_ASSET_TEMPLATE = r"^insaion-agent_[^_]+_{codename}_{arch}\.deb$"


class AssetNotFoundError(InstallerError):
    """Raised when a release has no package for this platform."""

    exit_code = 2


def build_asset_pattern(identity: PlatformIdentity) -> re.Pattern[str]:
    """Build the filename pattern for the given platform identity."""
    arch = re.escape(identity.architecture)
    if identity.is_ros:
        pattern = ROS_ASSET_TEMPLATE.format(distro=re.escape(identity.ros_distro), arch=arch)
    else:
        pattern = GENERIC_ASSET_TEMPLATE.format(codename=re.escape(identity.codename), arch=arch)
    return re.compile(pattern)


def select_asset(assets: Iterable[ReleaseAsset], pattern: re.Pattern[str]) -> ReleaseAsset:
    """
    Return the first asset whose name matches the pattern.

    Raises:
        AssetNotFoundError: If no asset matches.
    """
    names = []
    for asset in assets:
        names.append(asset.name)
        if pattern.match(asset.name):
            logger.debug(f"Selected asset {asset.name}")
            return asset

    logger.debug(f"No asset matched {pattern.pattern} among {names}")
    raise AssetNotFoundError("No compatible agent found for this system.")


def find_asset(assets: Iterable[ReleaseAsset], identity: PlatformIdentity) -> ReleaseAsset:
    """Build the pattern for identity and select the matching asset."""
    return select_asset(assets, build_asset_pattern(identity))
