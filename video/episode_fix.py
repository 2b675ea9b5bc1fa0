"""
video.episode_fix

Episode metadata reconciliation for MKV libraries.

Workflow summary:
 - Enumerate container files under the root once
 - For every configured episode, pick the first file whose path contains the
   episode identifier and probe it with `mkvmerge -J`
 - Plan the minimal set of property edits (title, video/audio/subtitle track
   names, languages and default flags) and apply them with `mkvpropedit`
 - Optionally rename the file to "<series> - <identifier> - <episode name>"
 - Record anomalies (files without audio, failed episodes) for the final report
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from common.base.errors import SubprocessError
from common.base.logging import get_logger
from common.base.ops import rename_file
from common.shared.loader import DEFAULT_JOBS, EpisodeConfig, TrackRule
from common.shared.report import AnomalyReport
from common.shared.utils import Progress
from common.utils.probe_utils import probe_mkvmerge
from common.utils.propedit_utils import INFO_SECTION, set_property, track_section
from common.utils.track_utils import (
    AUDIO,
    SUBTITLES,
    VIDEO,
    MetadataSnapshot,
    Track,
    flag_string,
    parse_snapshot,
)

log = get_logger(__name__)

SERIES_NAME = "Friends"
NO_AUDIO = "no audio"

STATUS_SKIPPED = "skipped"
STATUS_OK = "ok"
STATUS_FIXED = "fixed"
STATUS_DRY_RUN = "dry-run"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class PropertyEdit:
    section: str
    prop: str
    value: str


@dataclass
class EpisodeResult:
    identifier: str
    correct_name: str
    status: str
    path: Optional[Path] = None
    edits: List[PropertyEdit] = field(default_factory=list)
    renamed_to: Optional[Path] = None
    message: str = ""

    def as_row(self) -> Dict[str, str]:
        return {
            "identifier": self.identifier,
            "name": self.correct_name,
            "status": self.status,
            "path": str(self.path) if self.path else "",
            "edits": "; ".join(f"{e.section} {e.prop}={e.value}" for e in self.edits),
            "renamed_to": str(self.renamed_to) if self.renamed_to else "",
            "message": self.message,
        }


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

def canonical_name(identifier: str, episode_name: str) -> str:
    return f"{SERIES_NAME} - {identifier} - {episode_name}"


def find_episode_file(files: Sequence[Path], identifier: str) -> Optional[Path]:
    """First file whose full path contains the identifier (substring match)."""
    for path in files:
        if identifier in str(path):
            return path
    return None


def _addressable(track: Optional[Track], snapshot: MetadataSnapshot) -> Optional[Track]:
    if track is not None and track.number is None:
        log.warning(f"⚠️ {snapshot.path.name}: {track.type} track without a number cannot be edited")
        return None
    return track


def _plan_rule_edits(
    config: EpisodeConfig,
    snapshot: MetadataSnapshot,
    track_type: str,
    rules: Sequence[TrackRule],
) -> List[PropertyEdit]:
    edits: List[PropertyEdit] = []
    for rule in rules:
        track = _addressable(snapshot.first_track(track_type, rule.language), snapshot)
        if track is None:
            continue
        section = track_section(track.number)
        desired_name = config.language_name(rule.language)
        if track.name != desired_name:
            edits.append(PropertyEdit(section, "name", desired_name))
        if track.default != rule.default:
            edits.append(PropertyEdit(section, "flag-default", flag_string(rule.default)))
    return edits


def plan_edits(config: EpisodeConfig, snapshot: MetadataSnapshot, correct_name: str) -> List[PropertyEdit]:
    """Edits needed to bring the snapshot in line with the configuration, in apply order."""
    edits: List[PropertyEdit] = []

    if snapshot.title != correct_name:
        edits.append(PropertyEdit(INFO_SECTION, "title", correct_name))

    video = _addressable(snapshot.first_track(VIDEO), snapshot)
    if video is not None:
        section = track_section(video.number)
        desired_name = config.language_name(config.video_language)
        if video.name != desired_name:
            edits.append(PropertyEdit(section, "name", desired_name))
        if video.language != config.video_language:
            edits.append(PropertyEdit(section, "language", config.video_language))

    edits.extend(_plan_rule_edits(config, snapshot, AUDIO, config.audio))
    edits.extend(_plan_rule_edits(config, snapshot, SUBTITLES, config.subtitles))
    return edits


def plan_rename(path: Path, correct_name: str) -> Optional[Path]:
    """Target path when the stem differs from the canonical name (case-insensitive)."""
    if path.stem.upper() == correct_name.upper():
        return None
    return path.with_name(f"{correct_name}{path.suffix}")


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def fix_episode(
    config: EpisodeConfig,
    files: Sequence[Path],
    identifier: str,
    episode_name: str,
    report: AnomalyReport,
    *,
    dry_run: bool = False,
    mkvmerge_bin: str = "mkvmerge",
    mkvpropedit_bin: str = "mkvpropedit",
) -> EpisodeResult:
    """
    Reconcile one episode end to end.

    Raises SubprocessError/OSError; edits already applied are not rolled back.
    """
    correct_name = canonical_name(identifier, episode_name)
    path = find_episode_file(files, identifier)
    if path is None:
        log.info(f"No file matches {identifier}; skipping.")
        return EpisodeResult(identifier, correct_name, STATUS_SKIPPED)

    snapshot = parse_snapshot(path, probe_mkvmerge(path, mkvmerge_bin))
    edits = plan_edits(config, snapshot, correct_name)
    for edit in edits:
        set_property(
            path,
            edit.section,
            edit.prop,
            edit.value,
            mkvpropedit_bin=mkvpropedit_bin,
            dry_run=dry_run,
        )

    renamed_to: Optional[Path] = None
    if config.rename_files:
        target = plan_rename(path, correct_name)
        if target is not None:
            renamed_to = rename_file(path, target, dry_run=dry_run)

    if snapshot.count(AUDIO) == 0:
        log.warning(f"⚠️ {correct_name}: file has no audio tracks")
        report.add(correct_name, NO_AUDIO)

    if not edits and renamed_to is None:
        status = STATUS_OK
    else:
        status = STATUS_DRY_RUN if dry_run else STATUS_FIXED
    log.info(f"Edits for {identifier} finished ({len(edits)} edit(s){', renamed' if renamed_to else ''})")
    return EpisodeResult(identifier, correct_name, status, path, edits, renamed_to)


def run_episode_fix(
    config: EpisodeConfig,
    files: Sequence[Path],
    report: AnomalyReport,
    *,
    jobs: int = DEFAULT_JOBS,
    dry_run: bool = False,
    mkvmerge_bin: str = "mkvmerge",
    mkvpropedit_bin: str = "mkvpropedit",
) -> List[EpisodeResult]:
    """
    Reconcile every configured episode on a bounded thread pool.

    Failures are isolated per episode: they are logged, recorded in the report
    and returned with status "error" while the other episodes continue.
    Results come back in configuration order.
    """
    episodes = list(config.episodes.items())
    results: Dict[str, EpisodeResult] = {}
    if not episodes:
        log.warning("No episodes configured.")
        return []

    claimed: Dict[Path, str] = {}
    for identifier, _ in episodes:
        path = find_episode_file(files, identifier)
        if path is None:
            continue
        if path in claimed:
            log.warning(f"⚠️ {identifier} and {claimed[path]} both match {path.name}; edits may conflict")
        else:
            claimed[path] = identifier

    # Queued episodes are cancelled when the loop exits early (Ctrl-C or an
    # unexpected error); only episodes already running are waited for.
    pool = ThreadPoolExecutor(max_workers=max(1, jobs), thread_name_prefix="episode")
    try:
        futures = {
            pool.submit(
                fix_episode,
                config,
                files,
                identifier,
                name,
                report,
                dry_run=dry_run,
                mkvmerge_bin=mkvmerge_bin,
                mkvpropedit_bin=mkvpropedit_bin,
            ): (identifier, name)
            for identifier, name in episodes
        }
        for future in Progress(as_completed(futures), desc="Fixing episodes", total=len(futures)):
            identifier, name = futures[future]
            try:
                results[identifier] = future.result()
            except (SubprocessError, OSError) as exc:
                correct_name = canonical_name(identifier, name)
                log.error(f"❌ {correct_name}: {exc}")
                report.add(correct_name, f"error: {exc}")
                results[identifier] = EpisodeResult(
                    identifier,
                    correct_name,
                    STATUS_ERROR,
                    find_episode_file(files, identifier),
                    message=str(exc),
                )
    finally:
        pool.shutdown(wait=True, cancel_futures=True)

    return [results[identifier] for identifier, _ in episodes]


def count_statuses(results: Sequence[EpisodeResult]) -> Dict[str, int]:
    summary = {
        "Episodes": len(results),
        "Fixed": 0,
        "Dry-run": 0,
        "Already correct": 0,
        "No matching file": 0,
        "Failed": 0,
    }
    labels = {
        STATUS_FIXED: "Fixed",
        STATUS_DRY_RUN: "Dry-run",
        STATUS_OK: "Already correct",
        STATUS_SKIPPED: "No matching file",
        STATUS_ERROR: "Failed",
    }
    for result in results:
        summary[labels[result.status]] += 1
    return summary
