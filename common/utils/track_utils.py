"""
Track extraction and normalization helpers for mkvmerge JSON payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

VIDEO = "video"
AUDIO = "audio"
SUBTITLES = "subtitles"


def flag_string(val: object) -> str:
    """Normalize a boolean flag to the yes/no form mkvpropedit expects."""
    return "yes" if bool(val) else "no"


@dataclass(frozen=True)
class Track:
    type: str
    number: Any
    name: Optional[str]
    language: Optional[str]
    default: Optional[bool]


@dataclass(frozen=True)
class MetadataSnapshot:
    """Point-in-time view of one container; never refreshed after edits."""

    path: Path
    title: Optional[str]
    tracks: Tuple[Track, ...]

    def first_track(self, track_type: str, language: Optional[str] = None) -> Optional[Track]:
        """First track of the given type, optionally restricted to a language."""
        for track in self.tracks:
            if track.type != track_type:
                continue
            if language is not None and track.language != language:
                continue
            return track
        return None

    def count(self, track_type: str) -> int:
        return sum(1 for t in self.tracks if t.type == track_type)


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _optional_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def parse_track(raw: Dict[str, Any]) -> Track:
    props = raw.get("properties") or {}
    return Track(
        type=str(raw.get("type") or "").lower(),
        number=props.get("number"),
        name=_optional_str(props.get("track_name")),
        language=_optional_str(props.get("language")),
        default=_optional_bool(props.get("default_track")),
    )


def parse_snapshot(path: Path, payload: Dict[str, Any]) -> MetadataSnapshot:
    """
    Convert an `mkvmerge -J` payload into a MetadataSnapshot.

    Missing properties are kept as None so they never equal a desired value.
    """
    container = payload.get("container") or {}
    props = container.get("properties") or {}
    tracks = tuple(parse_track(t) for t in payload.get("tracks") or [] if isinstance(t, dict))
    return MetadataSnapshot(
        path=Path(path),
        title=_optional_str(props.get("title")),
        tracks=tracks,
    )
