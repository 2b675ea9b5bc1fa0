"""Filesystem helper utilities shared across common modules."""

from __future__ import annotations

from pathlib import Path


def ensure_dir(path: Path | str) -> Path:
    p = Path(path).expanduser()
    p.mkdir(parents=True, exist_ok=True)
    return p


def same_file(a: Path, b: Path) -> bool:
    """True when both paths exist and point at the same inode."""
    try:
        return a.samefile(b)
    except OSError:
        return False
