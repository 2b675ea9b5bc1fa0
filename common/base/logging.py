"""
common.base.logging

Typed logging for the episode fixer.

Features:
 - FixerLogger subclass carrying the Rich flag and the per-run log file
 - Rich console output, or ANSI + emoji output when Rich is switched off
 - Per-run file logging under the configured log directory
 - Defaults read from the `logging` section of configs/config.yaml
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, cast

from rich.logging import RichHandler
from rich.text import Text

ROOT_LOGGER_NAME = "episode_fix"

# ----------------------------------------------------------------------
# LEVEL STYLE METADATA
# ----------------------------------------------------------------------

ANSI_RESET = "\033[0m"

LEVEL_STYLES: Dict[int, Dict[str, str]] = {
    logging.DEBUG: {"emoji": "🐛", "ansi": "\033[36m", "rich": "bright_cyan"},
    logging.INFO: {"emoji": "ℹ️", "ansi": "\033[32m", "rich": "green"},
    logging.WARNING: {"emoji": "⚠️", "ansi": "\033[33m", "rich": "yellow"},
    logging.ERROR: {"emoji": "❌", "ansi": "\033[31m", "rich": "red"},
    logging.CRITICAL: {"emoji": "💥", "ansi": "\033[95m", "rich": "bold magenta"},
}
DEFAULT_STYLE = LEVEL_STYLES[logging.INFO]


# ----------------------------------------------------------------------
# FORMATTERS
# ----------------------------------------------------------------------

class ColorEmojiFormatter(logging.Formatter):
    """Console formatter that injects colored level names and emojis."""

    def format(self, record: logging.LogRecord) -> str:
        style = LEVEL_STYLES.get(record.levelno, DEFAULT_STYLE)
        display = f"{style['emoji']} {record.levelname}"
        record.level_display = f"{style['ansi']}{display}{ANSI_RESET}"  # type: ignore[attr-defined]
        try:
            return super().format(record)
        finally:
            del record.level_display  # type: ignore[attr-defined]


class EmojiFormatter(logging.Formatter):
    """File formatter that prefixes log lines with the level emoji."""

    def format(self, record: logging.LogRecord) -> str:
        record.level_emoji = LEVEL_STYLES.get(record.levelno, DEFAULT_STYLE)["emoji"]  # type: ignore[attr-defined]
        return super().format(record)


class FixerRichHandler(RichHandler):
    """Rich console handler with emoji-enhanced level column."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        style = LEVEL_STYLES.get(record.levelno, DEFAULT_STYLE)
        text = Text()
        text.append(f"{style['emoji']} ", style=style["rich"])
        text.append(record.levelname, style=style["rich"])
        return text


# ----------------------------------------------------------------------
# LOGGER CLASS
# ----------------------------------------------------------------------

class FixerLogger(logging.Logger):
    """Logger with Rich flag and optional log file."""

    rich_enabled: bool = False
    log_file: Optional[Path] = None


# ----------------------------------------------------------------------
# NORMALIZERS
# ----------------------------------------------------------------------

def _normalize_level(value: Any) -> str:
    if isinstance(value, str):
        candidate = value.strip().upper()
        if candidate in logging._nameToLevel:  # type: ignore[attr-defined]
            return candidate
    elif isinstance(value, int):
        label = logging.getLevelName(value)
        if isinstance(label, str) and not label.startswith("Level "):
            return label
    return "INFO"


def normalize_use_rich(value: Any) -> Optional[bool]:
    """Map config values (bool, 'auto', 'yes', 'off', ...) onto True/False/None."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return None


def _resolve_use_rich(value: Optional[bool]) -> bool:
    if value is None:
        return sys.stdout.isatty()
    return value


# ----------------------------------------------------------------------
# SETUP
# ----------------------------------------------------------------------

def setup_logging(
    level: str | int | None = None,
    use_rich: Optional[bool] = None,
    log_dir: Optional[Path | str] = None,
    file_prefix: Optional[str] = None,
) -> FixerLogger:
    """
    Configure and return the episode fixer root logger.

    Args:
        level: Logging level name or number (INFO when unset or unknown).
        use_rich: Force Rich console output on/off. None picks Rich for terminals.
        log_dir: Directory for the per-run log file. Defaults to ./logs.
        file_prefix: Prefix of the log file name.
    """
    resolved_level = _normalize_level(level)
    resolved_log_dir = Path(log_dir or "./logs").expanduser()
    resolved_prefix = file_prefix or "episode_fix"

    logging.setLoggerClass(FixerLogger)
    logger = cast(FixerLogger, logging.getLogger(ROOT_LOGGER_NAME))
    logger.setLevel(resolved_level)

    # Rebuild handlers on every call so repeated setup honours new settings.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler: logging.Handler
    if _resolve_use_rich(use_rich):
        console_handler = FixerRichHandler(
            rich_tracebacks=True,
            markup=False,
            show_time=True,
            show_level=True,
            show_path=False,
            log_time_format="[%X]",
        )
        logger.rich_enabled = True
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(
            ColorEmojiFormatter(
                fmt="%(asctime)s %(level_display)s %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        logger.rich_enabled = False
    logger.addHandler(console_handler)

    resolved_log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    log_file_path = resolved_log_dir / f"{resolved_prefix}_{timestamp}.log"
    file_handler = logging.FileHandler(log_file_path, mode="a", encoding="utf-8")
    file_handler.setFormatter(
        EmojiFormatter(
            fmt="%(asctime)s %(level_emoji)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)
    logger.log_file = log_file_path

    logger.propagate = False
    logger._initialized = True  # type: ignore[attr-defined]
    logger.debug(
        "Logger initialized at level %s (Rich=%s)",
        resolved_level,
        "ON" if logger.rich_enabled else "OFF",
    )
    logger.info("📄 Log file created at: %s", log_file_path.resolve())
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> FixerLogger:
    """Retrieve a namespaced logger (configured later via setup_logging)."""
    logging.setLoggerClass(FixerLogger)
    base = cast(FixerLogger, logging.getLogger(ROOT_LOGGER_NAME))

    if not getattr(base, "_initialized", False) and not base.handlers:
        base.addHandler(logging.NullHandler())

    if not name or name == ROOT_LOGGER_NAME:
        return base
    return cast(FixerLogger, base.getChild(name))
