"""
common.base.ops

Operational helpers for the episode fixer.

 - run_command: argument-vector subprocess execution (never through a shell)
 - rename_file: in-place rename with dry-run support
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Optional, Sequence, Tuple

from .fs import same_file
from .logging import get_logger

log = get_logger(__name__)


# ----------------------------------------------------------------------
# FILESYSTEM OPERATIONS
# ----------------------------------------------------------------------

def rename_file(src: Path, dst: Path, dry_run: bool = False) -> Path:
    """
    Rename a file, refusing to clobber a different existing file.

    Args:
        src: Existing file.
        dst: New path.
        dry_run: Log the rename without performing it.

    Returns:
        The destination path.
    """
    src, dst = Path(src), Path(dst)
    if not src.exists():
        raise FileNotFoundError(f"Source not found: {src}")
    if dst.exists() and not same_file(src, dst):
        raise FileExistsError(f"Destination exists: {dst}")

    if dry_run:
        log.info(f"[DRY-RUN] Would rename {src.name} → {dst.name}")
        return dst

    src.rename(dst)
    log.info(f"✏️ Renamed {src.name} → {dst.name}")
    return dst


# ----------------------------------------------------------------------
# SUBPROCESS HELPERS
# ----------------------------------------------------------------------

def run_command(
    cmd: Sequence[str],
    cwd: Optional[Path | str] = None,
    timeout: Optional[int] = None,
) -> Tuple[int, str, str]:
    """
    Execute a command given as an argument vector and capture its output.

    Args:
        cmd: Program and arguments. Passed straight to the OS, no shell.
        cwd: Working directory
        timeout: Max seconds before killing process (None waits forever)

    Returns:
        tuple: (exit_code, stdout, stderr)
    """
    argv = [str(part) for part in cmd]
    log.debug(f"▶️ Running command: {argv} (cwd={cwd})")

    try:
        result = subprocess.run(
            argv,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        log.error(f"⏱️ Command timed out: {argv}")
        return (124, "", "timeout")
    except OSError as e:
        log.error(f"🚨 Error running {argv[0]}: {e}")
        return (127, "", str(e))

    out, err = result.stdout.strip(), result.stderr.strip()
    if result.returncode == 0:
        log.debug(f"✅ Command OK: {argv[0]}")
    else:
        log.warning(f"⚠️ Command returned {result.returncode}: {argv}")
        if err:
            log.debug(f"stderr: {err}")
    return result.returncode, out, err
