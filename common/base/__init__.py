"""Low-level shared utilities for the episode fixer."""

from .errors import ConfigError, DirectoryNotFoundError, EpisodeFixError, SubprocessError
from .logging import FixerLogger, get_logger, setup_logging

__all__ = [
    "get_logger",
    "setup_logging",
    "FixerLogger",
    "EpisodeFixError",
    "ConfigError",
    "DirectoryNotFoundError",
    "SubprocessError",
]
