from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

import common.utils.probe_utils as probe_utils
import common.utils.propedit_utils as propedit_utils


def make_payload(title: Optional[str], tracks: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Minimal `mkvmerge -J` document."""
    payload_tracks = []
    for number, track in enumerate(tracks, start=1):
        props = {"number": number}
        for key in ("track_name", "language", "default_track"):
            if key in track:
                props[key] = track[key]
        payload_tracks.append({"id": number - 1, "type": track["type"], "properties": props})
    container_props = {} if title is None else {"title": title}
    return {"container": {"properties": container_props}, "tracks": payload_tracks}


class FakeMkvTools:
    """
    Stand-in for mkvmerge/mkvpropedit.

    Payloads are keyed by a token (usually the episode identifier) found in the
    probed path, so they follow a file across renames. Successful edits are
    applied to the stored payload.
    """

    def __init__(self) -> None:
        self.payloads: Dict[str, Dict[str, Any]] = {}
        self.probes: List[str] = []
        self.edits: List[List[str]] = []
        self.fail_on: Dict[str, Tuple[int, str]] = {}
        self._lock = threading.Lock()

    def add(self, token: str, payload: Dict[str, Any]) -> None:
        self.payloads[token] = payload

    def _lookup(self, path: str) -> Optional[Dict[str, Any]]:
        for token, payload in self.payloads.items():
            if token in path:
                return payload
        return None

    def __call__(self, cmd, cwd=None, timeout=None) -> Tuple[int, str, str]:
        argv = [str(c) for c in cmd]
        path = argv[2]
        for token, failure in self.fail_on.items():
            if token in path:
                return failure[0], "", failure[1]
        if argv[1] == "-J":
            with self._lock:
                self.probes.append(path)
            payload = self._lookup(path)
            if payload is None:
                return 2, "", f"Error: the file '{path}' could not be opened"
            return 0, json.dumps(payload), ""
        with self._lock:
            self.edits.append(argv)
            self._apply(argv)
        return 0, "", ""

    def _apply(self, argv: List[str]) -> None:
        payload = self._lookup(argv[2])
        section = argv[4]
        prop, _, value = argv[6].partition("=")
        if section == "info":
            payload["container"]["properties"][prop] = value
            return
        number = int(section.split(":", 1)[1])
        track = next(t for t in payload["tracks"] if t["properties"]["number"] == number)
        key = {"name": "track_name", "language": "language", "flag-default": "default_track"}[prop]
        track["properties"][key] = (value == "yes") if prop == "flag-default" else value

    def edit_pairs(self) -> List[Tuple[str, str]]:
        return [(argv[4], argv[6]) for argv in self.edits]


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    logger = logging.getLogger("episode_fix")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(logging.NullHandler())
    logger.propagate = True
    logger._initialized = False  # type: ignore[attr-defined]


@pytest.fixture
def mkv_tools(monkeypatch: pytest.MonkeyPatch) -> FakeMkvTools:
    tools = FakeMkvTools()
    monkeypatch.setattr(probe_utils, "run_command", tools)
    monkeypatch.setattr(propedit_utils, "run_command", tools)
    return tools


@pytest.fixture
def sample_config_payload() -> Dict[str, Any]:
    return {
        "meta": {
            "languages": {"eng": {"name": "English"}},
            "video": {"language": "eng"},
            "audio": [{"language": "eng", "default": True}],
            "subtitles": [],
            "renameFiles": True,
        },
        "episodes": {"S01E01": "The Pilot"},
    }


def write_json(path: Path, payload: Any) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path
