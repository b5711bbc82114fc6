"""
Insaion Installer - Agent installer for ROS and Debian-based hosts.

Detects the host ROS distribution and architecture, resolves the newest
published agent release, downloads the matching package and installs it
with the system package manager.
"""

__version__ = "0.3.0"
__author__ = "Insaion"

__all__ = ["__version__"]
