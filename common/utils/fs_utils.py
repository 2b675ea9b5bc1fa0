"""
Shared filesystem utilities.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, Iterator, List

from common.base.errors import DirectoryNotFoundError
from common.base.logging import get_logger

log = get_logger(__name__)


def verify_directory(directory: Path | str) -> Path:
    """Return the resolved directory, or raise DirectoryNotFoundError."""
    path = Path(directory).expanduser()
    if not path.is_dir():
        log.error(f'Directory "{directory}" does not exist')
        raise DirectoryNotFoundError(directory)
    return path.resolve()


def iter_files(roots: Iterable[Path]) -> Iterator[Path]:
    """
    Walk the provided roots and yield file paths in a stable order.
    """
    for root in roots:
        root = root.resolve()
        if not root.exists():
            log.warning("⚠️ missing_root path=%s", root)
            continue
        if root.is_file():
            yield root
            continue
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for fname in sorted(filenames):
                yield Path(dirpath) / fname


def locate_container_files(root: Path | str, extension: str = ".mkv") -> List[Path]:
    """Absolute paths of every file under root whose suffix matches extension (case-insensitive)."""
    suffix = extension.lower()
    files = [p for p in iter_files([Path(root)]) if p.suffix.lower() == suffix]
    log.info(f"📂 Found {len(files)} {suffix} file(s) under {root}")
    return files
