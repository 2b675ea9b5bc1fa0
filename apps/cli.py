"""Command-line entry point for the episode fixer.

Installed as the `mkv-episode-fix` console script; shell completion is
provided through ``argcomplete``.

Exit codes: 0 success, 1 fatal error / missing options / failed episodes,
130 interrupted.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, NoReturn, Optional

import argcomplete
from rich.console import Console

from common.base.errors import ConfigError, DirectoryNotFoundError
from common.base.logging import get_logger, normalize_use_rich, setup_logging
from common.shared.loader import Settings, load_episode_config, load_settings
from common.shared.report import AnomalyReport, export_report, render_anomalies, summarize_counts
from common.utils.fs_utils import locate_container_files, verify_directory
from video.episode_fix import STATUS_ERROR, count_statuses, run_episode_fix

END_SENTINEL = "<<<END>>>"

log = get_logger("cli")


class _UsageParser(argparse.ArgumentParser):
    """ArgumentParser that exits with 1 (not 2) on usage errors."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _UsageParser(
        prog="mkv-episode-fix",
        description="Fix MKV titles, track names, languages and default flags from a JSON episode list.",
        usage="%(prog)s -d [directory] -c [config file]",
    )
    parser.add_argument("--directory", "-d", required=True, help="Directory to look for files.")
    parser.add_argument("--config", "-c", required=True, help="Configuration file (JSON).")
    parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        help="Maximum episodes (and external processes) running at once; defaults to settings.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Log planned edits and renames without applying them.")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (defaults to settings, INFO if unset).",
    )
    parser.add_argument("--output", type=Path, help="Directory for JSON/CSV run reports.")
    parser.add_argument("--settings", help="Path to settings YAML (defaults to configs/config.yaml).")
    return parser


def _configure_logging(logging_cfg: Dict[str, Any], level_override: Optional[str]) -> None:
    setup_logging(
        level=level_override or logging_cfg.get("level"),
        use_rich=normalize_use_rich(logging_cfg.get("use_rich")),
        log_dir=logging_cfg.get("log_dir"),
        file_prefix=logging_cfg.get("file_prefix"),
    )


def run(args: argparse.Namespace, settings: Settings, console: Console) -> int:
    jobs = args.jobs if args.jobs is not None else settings.runner.jobs
    if jobs < 1:
        raise ConfigError(f"--jobs must be a positive integer, got {jobs}")

    root = verify_directory(args.directory)
    config = load_episode_config(args.config)
    files = locate_container_files(root, settings.runner.extension)

    report = AnomalyReport()
    results = run_episode_fix(
        config,
        files,
        report,
        jobs=jobs,
        dry_run=args.dry_run,
        mkvmerge_bin=settings.runner.mkvmerge_bin,
        mkvpropedit_bin=settings.runner.mkvpropedit_bin,
    )

    render_anomalies(report, console)
    log.info(summarize_counts("Episode Fix Summary", count_statuses(results)))

    if args.output:
        export_report(
            [r.as_row() for r in results],
            report,
            base_name="episode_fix",
            output_dir=args.output,
            dry_run=args.dry_run,
        )

    return 1 if any(r.status == STATUS_ERROR for r in results) else 0


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    argcomplete.autocomplete(parser)
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = Console()

    try:
        settings = load_settings(args.settings)
    except ConfigError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        print(END_SENTINEL)
        return 1

    _configure_logging(settings.logging, args.log_level)
    log.info(f"🚀 Running {parser.prog}")
    log.debug(f"Arguments: {args}")

    try:
        exit_code = run(args, settings, console)
    except (DirectoryNotFoundError, ConfigError) as exc:
        log.error(f"❌ {exc}")
        exit_code = 1
    except KeyboardInterrupt:
        log.warning("⚠️ Operation cancelled by user.")
        exit_code = 130
    except Exception as exc:
        log.error(f"❌ Unexpected error: {exc}", exc_info=True)
        exit_code = 1

    print(END_SENTINEL)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
