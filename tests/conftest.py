"""
Pytest fixtures and configuration for installer tests.

Provides reusable fixtures for release metadata, platform identities,
HTTP response mocking and command results across the test suite.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from insaion_installer.commands import CommandResult
from insaion_installer.config import Config
from insaion_installer.environment import PlatformIdentity


# Release Metadata Fixtures
@pytest.fixture
def sample_release_json():
    """Sample response from the GitHub releases/tags endpoint."""
    return {
        "tag_name": "v1.4.2",
        "name": "Insaion Agent 1.4.2",
        "assets": [
            {
                "name": "ros-humble-cpp-agent_1.4.2-1jammy_arm64.deb",
                "browser_download_url": "https://github.com/insaion/assets/releases/download/v1.4.2/ros-humble-cpp-agent_1.4.2-1jammy_arm64.deb",
                "size": 2048,
            },
            {
                "name": "ros-humble-cpp-agent_1.4.2-1jammy_amd64.deb",
                "browser_download_url": "https://github.com/insaion/assets/releases/download/v1.4.2/ros-humble-cpp-agent_1.4.2-1jammy_amd64.deb",
                "size": 2048,
            },
            {
                "name": "ros-jazzy-cpp-agent_1.4.2-1noble_amd64.deb",
                "browser_download_url": "https://github.com/insaion/assets/releases/download/v1.4.2/ros-jazzy-cpp-agent_1.4.2-1noble_amd64.deb",
                "size": 2048,
            },
            {
                "name": "insaion-agent_1.4.2_noble_amd64.deb",
                "browser_download_url": "https://github.com/insaion/assets/releases/download/v1.4.2/insaion-agent_1.4.2_noble_amd64.deb",
                "size": 2048,
            },
            {
                "name": "SHA256SUMS",
                "browser_download_url": "https://github.com/insaion/assets/releases/download/v1.4.2/SHA256SUMS",
                "size": 512,
            },
        ],
    }


@pytest.fixture
def sample_gpg_colons_output():
    """Sample output from gpg --show-keys --with-fingerprint --with-colons."""
    return """pub:-:4096:1:7C3D57159FC2F927:1673449437:1799593437::-:::scESC::::::23::0:
fpr:::::::::24C975CBA61A024EE1B631787C3D57159FC2F927:
uid:-::::1673449437::6B2E9A0A2C7D5D9B1F9E2C6C1A0F11D3E0A0C2B1::InfluxData Package Signing Key <support@influxdata.com>::::::::::0:
sub:-:4096:1:AC10D7449F343ADC:1673449437:1799593437:::::s::::::23:
fpr:::::::::9D539D90D3328DC7D6C8D3B9D8FF8E1F7DF8B07E:"""


# Platform Fixtures
@pytest.fixture
def ros_humble_amd64():
    """Platform identity for a ROS 2 Humble host on amd64."""
    return PlatformIdentity(
        architecture="amd64",
        ros_distro="humble",
        os_id="ubuntu",
        codename="jammy",
        source="filesystem",
    )


@pytest.fixture
def ubuntu_noble_amd64():
    """Platform identity for a plain Ubuntu 24.04 host."""
    return PlatformIdentity(
        architecture="amd64",
        os_id="ubuntu",
        codename="noble",
        source="os-release",
    )


@pytest.fixture
def ros_root(tmp_path):
    """A fake /opt/ros tree with a single humble install."""
    root = tmp_path / "opt" / "ros"
    (root / "humble").mkdir(parents=True)
    return root


@pytest.fixture
def empty_ros_root(tmp_path):
    """A fake /opt/ros that does not exist."""
    return tmp_path / "missing" / "ros"


# HTTP Fixtures
def make_response(status_code=200, json_data=None, content=b"", url=""):
    """Build a MagicMock that looks like a requests.Response."""
    import requests

    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.url = url
    response.content = content
    response.text = content.decode("utf-8", errors="replace") if content else ""
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error"
        )
    response.iter_content.return_value = [content] if content else []
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


@pytest.fixture
def response_factory():
    """Factory fixture for mocked HTTP responses."""
    return make_response


# Command Fixtures
@pytest.fixture
def ok_result():
    """Factory for successful command results."""

    def _make(argv=None, stdout=""):
        return CommandResult(argv=list(argv or []), returncode=0, stdout=stdout, stderr="")

    return _make


@pytest.fixture
def failed_result():
    """Factory for failed command results."""

    def _make(argv=None, stderr="error", returncode=1):
        return CommandResult(argv=list(argv or []), returncode=returncode, stdout="", stderr=stderr)

    return _make


# Utility Fixtures
@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file."""
    config_file = tmp_path / "installer.yaml"
    config_file.write_text(
        """
release:
  base_url: "https://mirror.example.com/releases/download"
  timeout: 15
platform:
  ros_distro: jazzy
telemetry:
  enabled: false
"""
    )
    return config_file


@pytest.fixture
def sample_config(tmp_path):
    """Sample configuration for testing."""
    return Config(
        github_token=None,
        http_timeout=5,
        telemetry_enabled=True,
        keyring_dir=str(tmp_path / "keyrings"),
        sources_dir=str(tmp_path / "sources.list.d"),
        runtime_dir=str(tmp_path / "runtime"),
    )


# Pytest Configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "cli: marks tests as CLI tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
