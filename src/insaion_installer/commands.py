"""
Subprocess helpers for running system tools with consistent logging.

Commands that modify the system are run directly when the installer is
already root and through ``sudo`` otherwise.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


@dataclass(frozen=True)
class CommandResult:
    """Result of a single command invocation."""

    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """Raised when a checked command exits non-zero."""

    def __init__(self, result: CommandResult):
        super().__init__(
            f"Command failed ({result.returncode}): {format_argv(result.argv)}\n{result.stderr}"
        )
        self.result = result


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def is_root() -> bool:
    return os.geteuid() == 0


def command_exists(name: str) -> bool:
    """Return True if an executable is available on PATH."""
    return shutil.which(name) is not None


def run_command(
    argv: Sequence[str],
    *,
    check: bool = True,
    privileged: bool = False,
    env: Mapping[str, str] | None = None,
    input_data: bytes | str | None = None,
    timeout: int | None = None,
) -> CommandResult:
    """
    Run a command and capture its output.

    Args:
        argv: Command and arguments as list.
        check: If True, raise CommandError on non-zero exit.
        privileged: Prefix with sudo when not running as root.
        env: Extra environment variables for the child process.
        input_data: Data written to the child's stdin.
        timeout: Timeout in seconds.

    Returns:
        CommandResult with decoded stdout and stderr.
    """
    argv_list = list(argv)
    if privileged and not is_root():
        # sudo resets the environment, so extras go through env(1)
        extra = [f"{k}={v}" for k, v in (env or {}).items()]
        prefix = ["sudo", "env", *extra] if extra else ["sudo"]
        argv_list = [*prefix, *argv_list]

    logger.debug("CMD %s", format_argv(argv_list))

    try:
        proc = subprocess.run(
            argv_list,
            input=input_data,
            capture_output=True,
            env=dict(os.environ, **(env or {})),
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.debug("Command not found: %s", argv_list[0])
        result = CommandResult(argv_list, 127, "", f"Command not found: {argv_list[0]}")
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out: %s", format_argv(argv_list))
        result = CommandResult(argv_list, -1, "", "Command timed out")
    else:
        result = CommandResult(
            argv=argv_list,
            returncode=proc.returncode,
            stdout=_decode(proc.stdout),
            stderr=_decode(proc.stderr),
        )

    if result.stdout:
        logger.debug("STDOUT %s", result.stdout.strip())
    if result.stderr:
        logger.debug("STDERR %s", result.stderr.strip())

    if check and not result.ok:
        raise CommandError(result)

    return result


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
