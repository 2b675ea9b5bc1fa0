"""
Shared probing utilities.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from common.base.errors import SubprocessError
from common.base.ops import run_command


def probe_mkvmerge(path: Path, mkvmerge_bin: str = "mkvmerge") -> Dict[str, Any]:
    """
    Run mkvmerge -J against the given path and return the parsed JSON payload.

    Raises SubprocessError on a non-zero exit, empty output, invalid JSON or a
    payload whose container or tracks are not shaped as mkvmerge writes them.
    """
    cmd = [mkvmerge_bin, "-J", str(path)]
    code, out, err = run_command(cmd)
    if code != 0:
        raise SubprocessError(cmd, code, err or out)
    if not out:
        raise SubprocessError(cmd, code, err, reason="mkvmerge returned no output")
    try:
        payload = json.loads(out)
    except json.JSONDecodeError as exc:
        raise SubprocessError(cmd, code, err, reason=f"invalid JSON from mkvmerge: {exc}") from exc
    if not isinstance(payload, dict):
        raise SubprocessError(cmd, code, err, reason="mkvmerge JSON root is not an object")
    problem = _shape_problem(payload)
    if problem:
        raise SubprocessError(cmd, code, err, reason=f"unexpected mkvmerge JSON shape: {problem}")
    return payload


def _shape_problem(payload: Dict[str, Any]) -> Optional[str]:
    """Describe the first structural problem in an `mkvmerge -J` payload, if any."""
    container = payload.get("container")
    if container is not None:
        if not isinstance(container, Mapping):
            return "'container' is not an object"
        if not isinstance(container.get("properties") or {}, Mapping):
            return "'container.properties' is not an object"
    tracks = payload.get("tracks")
    if tracks is None:
        return None
    if not isinstance(tracks, list):
        return "'tracks' is not a list"
    for index, track in enumerate(tracks):
        if not isinstance(track, Mapping):
            return f"'tracks[{index}]' is not an object"
        if not isinstance(track.get("properties") or {}, Mapping):
            return f"'tracks[{index}].properties' is not an object"
    return None
