"""
Exception types shared across the installer.
"""

from __future__ import annotations


class InstallerError(Exception):
    """Base class for failures that abort an installation."""

    exit_code: int = 1

    def __init__(self, message: str, hint: str | None = None):
        super().__init__(message)
        self.message = message
        self.hint = hint
