"""
Unit tests for TelemetryProvisioner.

Tests key fingerprint verification, repository setup and graceful
degradation when any step fails.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import requests

from insaion_installer.commands import CommandError, CommandResult
from insaion_installer.packages import AptManager
from insaion_installer.telemetry import TelemetryProvisioner, parse_fingerprints

MODULE = "insaion_installer.telemetry"


def _provisioner(config, response=None):
    session = MagicMock()
    if response is not None:
        session.get.return_value = response
    apt = MagicMock(spec=AptManager)
    apt.install.return_value = True
    return TelemetryProvisioner(config, session=session, apt=apt)


class TestParseFingerprints:
    """Test parse_fingerprints()."""

    def test_extracts_primary_and_subkey(self, sample_gpg_colons_output):
        assert parse_fingerprints(sample_gpg_colons_output) == [
            "24C975CBA61A024EE1B631787C3D57159FC2F927",
            "9D539D90D3328DC7D6C8D3B9D8FF8E1F7DF8B07E",
        ]

    def test_ignores_garbage(self):
        assert parse_fingerprints("gpg: no valid OpenPGP data found.\n") == []


class TestVerifyKey:
    """Test TelemetryProvisioner.verify_key()."""

    def test_matching_fingerprint(self, sample_config, sample_gpg_colons_output, tmp_path):
        provisioner = _provisioner(sample_config)
        result = CommandResult(["gpg"], 0, sample_gpg_colons_output, "")
        with patch(f"{MODULE}.run_command", return_value=result) as mock_run:
            assert provisioner.verify_key(tmp_path / "k.key") is True

        argv = mock_run.call_args.args[0]
        assert argv[:4] == ["gpg", "--show-keys", "--with-fingerprint", "--with-colons"]

    def test_mismatched_fingerprint(self, sample_config, sample_gpg_colons_output, tmp_path):
        sample_config.telemetry_fingerprint = "0000 1111 2222 3333 4444 5555 6666 7777 8888 9999"
        provisioner = _provisioner(sample_config)
        result = CommandResult(["gpg"], 0, sample_gpg_colons_output, "")
        with patch(f"{MODULE}.run_command", return_value=result):
            assert provisioner.verify_key(tmp_path / "k.key") is False


class TestProvision:
    """Test TelemetryProvisioner.provision()."""

    def test_full_provisioning(
        self, sample_config, sample_gpg_colons_output, response_factory, tmp_path
    ):
        provisioner = _provisioner(sample_config, response_factory(content=b"-----BEGIN PGP"))
        gpg_show = CommandResult(["gpg"], 0, sample_gpg_colons_output, "")
        ok = CommandResult([], 0, "", "")

        with (
            patch(f"{MODULE}.command_exists", return_value=True),
            patch(f"{MODULE}.run_command", side_effect=[gpg_show, ok, ok, ok]) as mock_run,
        ):
            assert provisioner.provision(tmp_path) is True

        assert (tmp_path / "telemetry-archive.key").read_bytes() == b"-----BEGIN PGP"
        argvs = [c.args[0] for c in mock_run.call_args_list]
        assert argvs[1][:4] == ["gpg", "--batch", "--yes", "--dearmor"]
        assert argvs[1][-1] == str(provisioner.keyring_path)
        assert argvs[2] == ["chmod", "0644", str(provisioner.keyring_path)]
        assert argvs[3] == ["tee", str(provisioner.source_list_path)]
        source = mock_run.call_args_list[3].kwargs["input_data"].decode()
        assert source == (
            f"deb [signed-by={provisioner.keyring_path}] https://repos.influxdata.com/debian stable main\n"
        )
        provisioner.apt.ensure_directory.assert_called_once_with(sample_config.keyring_dir)
        provisioner.apt.update.assert_called_once()
        provisioner.apt.install.assert_called_once_with(
            ["telegraf"], with_recommends=True, check=False
        )

    def test_key_download_failure_skips(self, sample_config, tmp_path):
        provisioner = _provisioner(sample_config)
        provisioner.session.get.side_effect = requests.exceptions.ConnectionError("offline")

        with (
            patch(f"{MODULE}.command_exists", return_value=True),
            patch(f"{MODULE}.run_command") as mock_run,
        ):
            assert provisioner.provision(tmp_path) is False

        mock_run.assert_not_called()
        provisioner.apt.install.assert_not_called()

    def test_fingerprint_mismatch_skips(self, sample_config, response_factory, tmp_path):
        provisioner = _provisioner(sample_config, response_factory(content=b"key"))
        bad = CommandResult(["gpg"], 0, "fpr:::::::::DEADBEEF:\n", "")

        with (
            patch(f"{MODULE}.command_exists", return_value=True),
            patch(f"{MODULE}.run_command", return_value=bad) as mock_run,
        ):
            assert provisioner.provision(tmp_path) is False

        assert mock_run.call_count == 1
        provisioner.apt.ensure_directory.assert_not_called()

    def test_repository_command_failure_skips(
        self, sample_config, sample_gpg_colons_output, response_factory, tmp_path
    ):
        provisioner = _provisioner(sample_config, response_factory(content=b"key"))
        gpg_show = CommandResult(["gpg"], 0, sample_gpg_colons_output, "")
        dearmor_failed = CommandError(CommandResult(["gpg"], 2, "", "gpg: write error"))

        with (
            patch(f"{MODULE}.command_exists", return_value=True),
            patch(f"{MODULE}.run_command", side_effect=[gpg_show, dearmor_failed]),
        ):
            assert provisioner.provision(tmp_path) is False

        provisioner.apt.install.assert_not_called()

    def test_update_failure_still_installs(
        self, sample_config, sample_gpg_colons_output, response_factory, tmp_path
    ):
        provisioner = _provisioner(sample_config, response_factory(content=b"key"))
        provisioner.apt.update.return_value = False
        gpg_show = CommandResult(["gpg"], 0, sample_gpg_colons_output, "")
        ok = CommandResult([], 0, "", "")

        with (
            patch(f"{MODULE}.command_exists", return_value=True),
            patch(f"{MODULE}.run_command", side_effect=[gpg_show, ok, ok, ok]),
        ):
            assert provisioner.provision(tmp_path) is True

        provisioner.apt.update.assert_called_once_with(check=False)
        provisioner.apt.install.assert_called_once_with(
            ["telegraf"], with_recommends=True, check=False
        )

    def test_package_install_failure(
        self, sample_config, sample_gpg_colons_output, response_factory, tmp_path
    ):
        provisioner = _provisioner(sample_config, response_factory(content=b"key"))
        provisioner.apt.install.return_value = False
        gpg_show = CommandResult(["gpg"], 0, sample_gpg_colons_output, "")
        ok = CommandResult([], 0, "", "")

        with (
            patch(f"{MODULE}.command_exists", return_value=True),
            patch(f"{MODULE}.run_command", side_effect=[gpg_show, ok, ok, ok]),
        ):
            assert provisioner.provision(tmp_path) is False

    def test_without_gpg(self, sample_config, tmp_path):
        provisioner = _provisioner(sample_config)
        with patch(f"{MODULE}.command_exists", return_value=False):
            assert provisioner.provision(tmp_path) is False
        provisioner.session.get.assert_not_called()
