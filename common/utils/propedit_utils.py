"""
mkvpropedit wrapper: one in-place property edit per call.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from common.base.errors import SubprocessError
from common.base.logging import get_logger
from common.base.ops import run_command

log = get_logger(__name__)

INFO_SECTION = "info"


def track_section(number: object) -> str:
    return f"track:{number}"


def build_propedit_cmd(
    path: Path,
    section: str,
    prop: str,
    value: str,
    mkvpropedit_bin: str = "mkvpropedit",
) -> List[str]:
    """Argument vector for `mkvpropedit -v <file> --edit <section> --set <prop>=<value>`."""
    return [mkvpropedit_bin, "-v", str(path), "--edit", section, "--set", f"{prop}={value}"]


def set_property(
    path: Path,
    section: str,
    prop: str,
    value: str,
    *,
    mkvpropedit_bin: str = "mkvpropedit",
    dry_run: bool = False,
) -> None:
    cmd = build_propedit_cmd(path, section, prop, value, mkvpropedit_bin)
    if dry_run:
        log.info(f"[DRY-RUN] Would set {section} {prop}={value!r} on {Path(path).name}")
        return

    log.debug(f"Running command: {cmd}")
    code, out, err = run_command(cmd)
    if code != 0:
        raise SubprocessError(cmd, code, err or out)
    log.info(f"🛠️ {Path(path).name}: {section} {prop}={value!r}")
