from __future__ import annotations

import json
from pathlib import Path

import pytest

from apps.cli import END_SENTINEL, main
from common.shared.loader import cli_main

from conftest import make_payload, write_json


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(
        "logging:\n"
        "  level: DEBUG\n"
        "  use_rich: false\n"
        f"  log_dir: '{tmp_path / 'logs'}'\n"
        "runner:\n"
        "  jobs: 2\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def library(tmp_path: Path) -> Path:
    root = tmp_path / "library"
    root.mkdir()
    return root


def test_missing_options_exit_with_one(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--directory", "/tmp"])

    assert excinfo.value.code == 1
    assert "usage:" in capsys.readouterr().err


def test_missing_directory_is_fatal(
    tmp_path: Path, settings_file: Path, sample_config_payload, mkv_tools, capsys
) -> None:
    cfg = write_json(tmp_path / "friends.json", sample_config_payload)

    code = main(["-d", str(tmp_path / "nope"), "-c", str(cfg), "--settings", str(settings_file)])

    out = capsys.readouterr().out
    assert code == 1
    assert "Directory not found" in out
    assert out.rstrip().endswith(END_SENTINEL)
    assert mkv_tools.probes == []


def test_invalid_config_is_fatal(tmp_path: Path, library: Path, settings_file: Path, mkv_tools, capsys) -> None:
    cfg = tmp_path / "friends.json"
    cfg.write_text('{"meta": {}, "episodes": []}', encoding="utf-8")

    code = main(["-d", str(library), "-c", str(cfg), "--settings", str(settings_file)])

    out = capsys.readouterr().out
    assert code == 1
    assert "'meta.languages' must be a mapping" in out
    assert "'episodes' must be a mapping" in out
    assert out.rstrip().endswith(END_SENTINEL)


def test_full_run_fixes_and_reports(
    tmp_path: Path, library: Path, settings_file: Path, sample_config_payload, mkv_tools, capsys
) -> None:
    sample_config_payload["episodes"]["S01E02"] = "The One with the Sonogram at the End"
    sample_config_payload["episodes"]["S01E09"] = "The One Where Underdog Gets Away"
    cfg = write_json(tmp_path / "friends.json", sample_config_payload)
    (library / "random_S01E01_file.mkv").touch()
    (library / "S01E02.mkv").touch()
    mkv_tools.add(
        "S01E01",
        make_payload(
            "old",
            [
                {"type": "video", "language": "jpn", "track_name": "x"},
                {"type": "audio", "language": "eng", "track_name": "y", "default_track": False},
            ],
        ),
    )
    mkv_tools.add("S01E02", make_payload("old", [{"type": "video", "language": "eng"}]))
    reports = tmp_path / "reports"

    code = main(
        ["-d", str(library), "-c", str(cfg), "--settings", str(settings_file), "--output", str(reports)]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert sorted(p.name for p in library.iterdir()) == [
        "Friends - S01E01 - The Pilot.mkv",
        "Friends - S01E02 - The One with the Sonogram at the End.mkv",
    ]
    assert "no audio" in out
    assert "Friends - S01E02 - The One with the Sonogram at the End" in out
    assert out.rstrip().endswith(END_SENTINEL)

    json_reports = list(reports.glob("episode_fix_*.json"))
    assert len(json_reports) == 1
    payload = json.loads(json_reports[0].read_text(encoding="utf-8"))
    assert [row["status"] for row in payload["episodes"]] == ["fixed", "fixed", "skipped"]
    assert payload["anomalies"] == [
        {"name": "Friends - S01E02 - The One with the Sonogram at the End", "description": "no audio"}
    ]
    assert list(reports.glob("episode_fix_*.csv"))
    assert list((tmp_path / "logs").glob("episode_fix_*.log"))


def test_dry_run_leaves_files_alone(
    tmp_path: Path, library: Path, settings_file: Path, sample_config_payload, mkv_tools, capsys
) -> None:
    cfg = write_json(tmp_path / "friends.json", sample_config_payload)
    source = library / "random_S01E01_file.mkv"
    source.touch()
    mkv_tools.add("S01E01", make_payload("old", [{"type": "audio", "language": "eng"}]))

    code = main(["-d", str(library), "-c", str(cfg), "--settings", str(settings_file), "--dry-run"])

    assert code == 0
    assert source.exists()
    assert mkv_tools.edits == []
    assert "[DRY-RUN]" in capsys.readouterr().out


def test_failed_episode_sets_exit_code(
    tmp_path: Path, library: Path, settings_file: Path, sample_config_payload, mkv_tools, capsys
) -> None:
    sample_config_payload["episodes"]["S01E02"] = "B"
    cfg = write_json(tmp_path / "friends.json", sample_config_payload)
    (library / "S01E01.mkv").touch()
    (library / "S01E02.mkv").touch()
    mkv_tools.add("S01E01", make_payload("old", [{"type": "audio", "language": "eng"}]))
    mkv_tools.fail_on["S01E02"] = (2, "Error: the file could not be opened")

    code = main(["-d", str(library), "-c", str(cfg), "--settings", str(settings_file), "-j", "1"])

    out = capsys.readouterr().out
    assert code == 1
    assert (library / "Friends - S01E01 - The Pilot.mkv").exists()
    assert "could not be opened" in out
    assert out.rstrip().endswith(END_SENTINEL)


def test_invalid_jobs_is_fatal(tmp_path: Path, library: Path, settings_file: Path, sample_config_payload, capsys) -> None:
    cfg = write_json(tmp_path / "friends.json", sample_config_payload)

    code = main(["-d", str(library), "-c", str(cfg), "--settings", str(settings_file), "--jobs", "0"])

    assert code == 1
    assert "--jobs must be a positive integer" in capsys.readouterr().out


def test_config_check_cli(tmp_path: Path, sample_config_payload, capsys) -> None:
    cfg = write_json(tmp_path / "friends.json", sample_config_payload)

    assert cli_main([str(cfg)]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["episodes"] == 1
    assert summary["audio"] == [{"language": "eng", "default": True}]

    cfg.write_text("{", encoding="utf-8")
    assert cli_main([str(cfg)]) == 1
