"""
Shared configuration loading and validation helpers.

Provides:
 - `load_settings`: YAML application settings (logging + runner defaults)
 - `load_episode_config`: validated JSON episode configuration
 - `cli_main`: command-line entry point exposed as the `mkv-episode-config` script
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from common.base.errors import ConfigError
from common.base.file_io import read_text, read_yaml


CONFIGS_DIR = Path(__file__).resolve().parents[2] / "configs"
DEFAULT_SETTINGS_PATH = CONFIGS_DIR / "config.yaml"

LOGGING_SECTION_KEY = "logging"
RUNNER_SECTION_KEY = "runner"
LOGGING_ALLOWED_KEYS = {"level", "use_rich", "log_dir", "file_prefix"}
RUNNER_ALLOWED_KEYS = {"jobs", "extension", "mkvmerge_bin", "mkvpropedit_bin"}

DEFAULT_JOBS = 4
DEFAULT_EXTENSION = ".mkv"


# ----------------------------------------------------------------------
# APPLICATION SETTINGS (YAML)
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class RunnerSettings:
    jobs: int = DEFAULT_JOBS
    extension: str = DEFAULT_EXTENSION
    mkvmerge_bin: str = "mkvmerge"
    mkvpropedit_bin: str = "mkvpropedit"


@dataclass(frozen=True)
class Settings:
    logging: Dict[str, Any] = field(default_factory=dict)
    runner: RunnerSettings = field(default_factory=RunnerSettings)


def _coerce_jobs(value: Any, config_path: Path) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Settings '{config_path}' field 'runner.jobs' must be a positive integer.")
    try:
        jobs = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Settings '{config_path}' field 'runner.jobs' must be a positive integer.") from None
    if jobs < 1:
        raise ConfigError(f"Settings '{config_path}' field 'runner.jobs' must be a positive integer.")
    return jobs


def _normalize_extension(value: Any) -> str:
    text = str(value or DEFAULT_EXTENSION).strip().lower()
    return text if text.startswith(".") else f".{text}"


def _extract_section(root: Mapping[str, Any], key: str, allowed: set, config_path: Path) -> Dict[str, Any]:
    section = root.get(key) or {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"'{key}' section must be a mapping in {config_path}")
    unexpected = sorted(k for k in section if k not in allowed)
    if unexpected:
        raise ConfigError(
            f"'{key}' section contains unsupported keys in {config_path}: {', '.join(unexpected)}"
        )
    return dict(section)


def load_settings(path: str | Path | None = None) -> Settings:
    """
    Load application settings from YAML.

    An explicit path must exist. Without one, configs/config.yaml is used when
    present and built-in defaults otherwise.
    """
    if path:
        cfg_path = Path(path).expanduser()
        if not cfg_path.exists():
            raise ConfigError(f"Settings file not found: {cfg_path}")
    elif DEFAULT_SETTINGS_PATH.exists():
        cfg_path = DEFAULT_SETTINGS_PATH
    else:
        return Settings()

    try:
        root = read_yaml(cfg_path)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unable to read settings '{cfg_path}': {exc}") from exc
    if not isinstance(root, Mapping):
        raise ConfigError(f"Settings root must be a mapping in {cfg_path}")

    unexpected = sorted(k for k in root if k not in {LOGGING_SECTION_KEY, RUNNER_SECTION_KEY})
    if unexpected:
        raise ConfigError(f"Settings '{cfg_path}' contains unsupported sections: {', '.join(unexpected)}")

    logging_cfg = _extract_section(root, LOGGING_SECTION_KEY, LOGGING_ALLOWED_KEYS, cfg_path)
    runner_cfg = _extract_section(root, RUNNER_SECTION_KEY, RUNNER_ALLOWED_KEYS, cfg_path)

    runner = RunnerSettings(
        jobs=_coerce_jobs(runner_cfg.get("jobs", DEFAULT_JOBS), cfg_path),
        extension=_normalize_extension(runner_cfg.get("extension")),
        mkvmerge_bin=str(runner_cfg.get("mkvmerge_bin") or "mkvmerge"),
        mkvpropedit_bin=str(runner_cfg.get("mkvpropedit_bin") or "mkvpropedit"),
    )
    return Settings(logging=logging_cfg, runner=runner)


# ----------------------------------------------------------------------
# EPISODE CONFIGURATION (JSON)
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class TrackRule:
    """Desired state for the first track of a given type and language."""

    language: str
    default: bool


@dataclass(frozen=True)
class EpisodeConfig:
    languages: Mapping[str, str]
    video_language: str
    audio: Tuple[TrackRule, ...]
    subtitles: Tuple[TrackRule, ...]
    rename_files: bool
    episodes: Mapping[str, str]

    def language_name(self, code: str) -> str:
        return self.languages[code]


def _validate_languages(meta: Mapping[str, Any], problems: List[str]) -> Dict[str, str]:
    raw = meta.get("languages")
    if not isinstance(raw, Mapping):
        problems.append("'meta.languages' must be a mapping of language code to {name}")
        return {}
    languages: Dict[str, str] = {}
    for code, entry in raw.items():
        name = entry.get("name") if isinstance(entry, Mapping) else None
        if not isinstance(name, str):
            problems.append(f"'meta.languages.{code}.name' must be a string")
            continue
        languages[str(code)] = name
    return languages


def _validate_language_ref(value: Any, where: str, languages: Mapping[str, str], problems: List[str]) -> Optional[str]:
    if not isinstance(value, str):
        problems.append(f"'{where}' must be a string")
        return None
    if languages and value not in languages:
        problems.append(f"'{where}' refers to '{value}' which is not defined in 'meta.languages'")
        return None
    return value


def _validate_rules(
    meta: Mapping[str, Any],
    key: str,
    languages: Mapping[str, str],
    problems: List[str],
) -> Tuple[TrackRule, ...]:
    raw = meta.get(key)
    if not isinstance(raw, list):
        problems.append(f"'meta.{key}' must be a list")
        return ()
    rules: List[TrackRule] = []
    for index, entry in enumerate(raw):
        where = f"meta.{key}[{index}]"
        if not isinstance(entry, Mapping):
            problems.append(f"'{where}' must be a mapping with 'language' and 'default'")
            continue
        language = _validate_language_ref(entry.get("language"), f"{where}.language", languages, problems)
        default = entry.get("default")
        if not isinstance(default, bool):
            problems.append(f"'{where}.default' must be true or false")
            continue
        if language is not None:
            rules.append(TrackRule(language=language, default=default))
    return tuple(rules)


def _validate_episodes(root: Mapping[str, Any], problems: List[str]) -> Dict[str, str]:
    raw = root.get("episodes")
    if not isinstance(raw, Mapping):
        problems.append("'episodes' must be a mapping of episode identifier to episode name")
        return {}
    episodes: Dict[str, str] = {}
    for identifier, name in raw.items():
        if not str(identifier).strip():
            problems.append("'episodes' contains an empty identifier")
            continue
        if not isinstance(name, str):
            problems.append(f"'episodes.{identifier}' must be a string")
            continue
        episodes[str(identifier)] = name
    return episodes


def parse_episode_config(payload: Any, source: str = "<memory>") -> EpisodeConfig:
    """Validate a decoded JSON document, collecting every problem before failing."""
    if not isinstance(payload, Mapping):
        raise ConfigError(f"Configuration root must be an object in {source}")

    problems: List[str] = []
    meta = payload.get("meta")
    if not isinstance(meta, Mapping):
        problems.append("'meta' must be an object")
        meta = {}

    languages = _validate_languages(meta, problems)

    video = meta.get("video")
    video_language: Optional[str] = None
    if isinstance(video, Mapping):
        video_language = _validate_language_ref(video.get("language"), "meta.video.language", languages, problems)
    else:
        problems.append("'meta.video' must be an object with 'language'")

    audio = _validate_rules(meta, "audio", languages, problems)
    subtitles = _validate_rules(meta, "subtitles", languages, problems)

    rename_files = meta.get("renameFiles")
    if not isinstance(rename_files, bool):
        problems.append("'meta.renameFiles' must be true or false")

    episodes = _validate_episodes(payload, problems)

    if problems:
        raise ConfigError(f"Invalid configuration {source}:", problems)

    return EpisodeConfig(
        languages=languages,
        video_language=video_language or "",
        audio=audio,
        subtitles=subtitles,
        rename_files=bool(rename_files),
        episodes=episodes,
    )


def load_episode_config(path: str | Path) -> EpisodeConfig:
    """Read and validate the JSON episode configuration."""
    cfg_path = Path(path).expanduser()
    try:
        text = read_text(cfg_path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Unable to read configuration '{cfg_path}': {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Malformed JSON in '{cfg_path}': {exc}") from exc
    return parse_episode_config(payload, str(cfg_path))


# ----------------------------------------------------------------------
# CLI
# ----------------------------------------------------------------------

def cli_main(argv: Optional[Iterable[str]] = None) -> int:
    """Validate an episode configuration and print its normalized form."""
    parser = argparse.ArgumentParser(description="Validate an episode configuration file.")
    parser.add_argument("config", help="Path to the JSON episode configuration.")
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        config = load_episode_config(args.config)
    except ConfigError as exc:
        print(exc)
        return 1

    summary = {
        "languages": dict(config.languages),
        "video": config.video_language,
        "audio": [{"language": r.language, "default": r.default} for r in config.audio],
        "subtitles": [{"language": r.language, "default": r.default} for r in config.subtitles],
        "renameFiles": config.rename_files,
        "episodes": len(config.episodes),
    }
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(cli_main())
