"""
Configuration management for the Insaion installer.

Supports configuration via YAML files, environment variables, and programmatic access.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATHS = [
    Path("/etc/insaion-agent/installer.yaml"),
    Path.home() / ".config" / "insaion-agent" / "installer.yaml",
    Path("insaion-installer.yaml"),
]

INFLUXDATA_FINGERPRINT = "24C975CBA61A024EE1B631787C3D57159FC2F927"


@dataclass
class Config:
    """
    Configuration container for the installer.

    Priority (highest to lowest):
    1. Programmatic values passed to __init__
    2. Environment variables (prefixed with INSAION_, plus GITHUB_TOKEN)
    3. Config file values
    4. Default values
    """

    # Release source
    repo_owner: str = "insaion"
    repo_name: str = "assets"
    base_url: str = "https://github.com/insaion/assets/releases/download"
    api_url: str = "https://api.github.com"
    web_url: str = "https://github.com"
    release_tag: str = "latest"
    http_timeout: int = 30

    # Authentication
    github_token: str | None = None

    # Platform
    ros_distro: str | None = None

    # Telemetry agent
    telemetry_enabled: bool = True
    telemetry_key_url: str = "https://repos.influxdata.com/influxdata-archive.key"
    telemetry_fingerprint: str = INFLUXDATA_FINGERPRINT
    telemetry_repo_url: str = "https://repos.influxdata.com/debian"
    telemetry_package: str = "telegraf"
    keyring_dir: str = "/etc/apt/keyrings"
    sources_dir: str = "/etc/apt/sources.list.d"

    # Installation
    runtime_dir: str = "/var/lib/insaion-agent"

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_file(cls, path: str | Path) -> Config:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create config from a dictionary."""
        # Nested sections map onto prefixed field names, e.g. telemetry.enabled
        flat = {}
        for key, value in data.items():
            if isinstance(value, dict):
                for subkey, subvalue in value.items():
                    flat[_SECTION_KEYS.get((key, subkey), subkey)] = subvalue
            else:
                flat[key] = value

        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in flat.items() if k in known_fields}

        return cls(**filtered)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> Config:
        """
        Load configuration with full resolution order.

        Args:
            config_path: Explicit path to config file. If None, searches
                        default locations.

        Returns:
            Fully resolved Config instance.
        """
        base_config: dict[str, Any] = {}

        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    base_config = yaml.safe_load(f) or {}
        else:
            for path in DEFAULT_CONFIG_PATHS:
                if path.exists():
                    with open(path) as f:
                        base_config = yaml.safe_load(f) or {}
                    break

        config = cls.from_dict(base_config) if base_config else cls()
        config._apply_env_overrides()

        return config

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        env_mappings = {
            "GITHUB_TOKEN": "github_token",
            "INSAION_BASE_URL": "base_url",
            "INSAION_API_URL": "api_url",
            "INSAION_HTTP_TIMEOUT": "http_timeout",
            "INSAION_TELEMETRY_ENABLED": "telemetry_enabled",
            "INSAION_RUNTIME_DIR": "runtime_dir",
            "INSAION_LOG_LEVEL": "log_level",
            "INSAION_LOG_FILE": "log_file",
        }

        for env_var, attr in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None or value == "":
                continue
            current = getattr(self, attr)
            if isinstance(current, bool):
                setattr(self, attr, value.lower() in ("true", "1", "yes"))
            elif isinstance(current, int):
                setattr(self, attr, int(value))
            else:
                setattr(self, attr, value)

    @property
    def repo_slug(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "release": {
                "repo_owner": self.repo_owner,
                "repo_name": self.repo_name,
                "base_url": self.base_url,
                "api_url": self.api_url,
                "web_url": self.web_url,
                "tag": self.release_tag,
                "timeout": self.http_timeout,
            },
            "auth": {
                "github_token": "***" if self.github_token else None,
            },
            "platform": {
                "ros_distro": self.ros_distro,
            },
            "telemetry": {
                "enabled": self.telemetry_enabled,
                "key_url": self.telemetry_key_url,
                "fingerprint": self.telemetry_fingerprint,
                "repo_url": self.telemetry_repo_url,
                "package": self.telemetry_package,
                "keyring_dir": self.keyring_dir,
                "sources_dir": self.sources_dir,
            },
            "install": {
                "runtime_dir": self.runtime_dir,
            },
            "logging": {
                "level": self.log_level,
                "file": self.log_file,
            },
        }

    def save(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


# Section-qualified keys whose field name differs from the bare subkey
_SECTION_KEYS = {
    ("release", "tag"): "release_tag",
    ("release", "timeout"): "http_timeout",
    ("telemetry", "enabled"): "telemetry_enabled",
    ("telemetry", "key_url"): "telemetry_key_url",
    ("telemetry", "fingerprint"): "telemetry_fingerprint",
    ("telemetry", "repo_url"): "telemetry_repo_url",
    ("telemetry", "package"): "telemetry_package",
    ("logging", "level"): "log_level",
    ("logging", "file"): "log_file",
}
