"""
common.base.errors

Exception types raised by the episode fixer.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence


class EpisodeFixError(Exception):
    """Base class for all episode fixer failures."""


class ConfigError(EpisodeFixError):
    """Raised when a configuration file is unreadable, malformed or invalid."""

    def __init__(self, message: str, problems: Optional[Iterable[str]] = None):
        self.problems: List[str] = list(problems or [])
        if self.problems:
            message = message + "\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(message)


class DirectoryNotFoundError(EpisodeFixError):
    """Raised when the directory to scan does not exist."""

    def __init__(self, directory: object):
        self.directory = directory
        super().__init__(f"Directory not found: {directory}")


class SubprocessError(EpisodeFixError):
    """Raised when mkvmerge/mkvpropedit fail or return unusable output."""

    def __init__(
        self,
        cmd: Sequence[str],
        returncode: int,
        stderr: str = "",
        reason: str = "",
    ):
        self.cmd = list(cmd)
        self.returncode = returncode
        self.stderr = stderr
        detail = reason or stderr or "no error output"
        super().__init__(f"{self.cmd[0] if self.cmd else 'command'} failed (exit {returncode}): {detail}")


__all__ = [
    "EpisodeFixError",
    "ConfigError",
    "DirectoryNotFoundError",
    "SubprocessError",
]
