"""
common.shared.report

Run reporting for the episode fixer.

 - AnomalyReport: thread-safe collector fed by concurrent episode workers
 - render_anomalies(): Rich table printed once at the end of a run
 - summarize_counts(): human-readable status summary
 - export_report(): optional JSON/CSV export with dry-run support
"""

from __future__ import annotations

import csv
import threading
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from rich.console import Console
from rich.table import Table

from common.base.file_io import open_file, write_json as _dump_json
from common.base.fs import ensure_dir
from common.base.logging import get_logger

log = get_logger(__name__)


# ----------------------------------------------------------------------
# ANOMALY COLLECTION
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class AnomalyRecord:
    name: str
    description: str


class AnomalyReport:
    """Append-only, insertion-ordered anomaly list guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: List[AnomalyRecord] = []

    def add(self, name: str, description: str) -> AnomalyRecord:
        record = AnomalyRecord(name=name, description=description)
        with self._lock:
            self._records.append(record)
        return record

    @property
    def records(self) -> List[AnomalyRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def as_rows(self) -> List[Dict[str, str]]:
        return [asdict(r) for r in self.records]


def render_anomalies(report: AnomalyReport, console: Optional[Console] = None) -> Table:
    """Print the anomaly table and return it."""
    table = Table(title="Anomalies", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("name", style="cyan")
    table.add_column("description", style="yellow")
    for index, record in enumerate(report.records):
        table.add_row(str(index), record.name, record.description)
    (console or Console()).print(table)
    return table


# ----------------------------------------------------------------------
# HUMAN-READABLE SUMMARY
# ----------------------------------------------------------------------

def summarize_counts(title: str, summary: Mapping[str, int]) -> str:
    """
    Return a formatted, human-readable summary string.
    Example:
        summarize_counts("Episode Fix Summary", {"Fixed": 12, "Skipped": 3})
    """
    lines = [f"\n===== {title.upper()} ====="]
    for key, val in summary.items():
        lines.append(f"{key}: {val}")
    lines.append("=" * (len(title) + 12) + "\n")
    return "\n".join(lines)


# ----------------------------------------------------------------------
# FILE EXPORT
# ----------------------------------------------------------------------

def timestamped_filename(base_name: str, ext: str = "json", output_dir: Optional[Path] = None) -> Path:
    """Generate a timestamped output filename (e.g., episode_fix_2025-10-06_103000.json)."""
    ts = datetime.now().strftime("%Y-%m-%d_%H%M%S")
    output_dir = ensure_dir(output_dir or Path.cwd())
    return output_dir / f"{base_name}_{ts}.{ext}"


def write_csv(rows: Sequence[Mapping[str, Any]], output_path: Path, dry_run: bool = False) -> Path:
    if dry_run:
        log.info(f"[DRY-RUN] Would write CSV: {output_path}")
        return output_path

    ensure_dir(output_path.parent)
    fieldnames: List[str] = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)
    with open_file(output_path, "w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    log.info(f"📊 CSV report saved → {output_path}")
    return output_path


def write_json(data: Any, output_path: Path, dry_run: bool = False) -> Path:
    if dry_run:
        log.info(f"[DRY-RUN] Would write JSON: {output_path}")
        return output_path

    ensure_dir(output_path.parent)
    _dump_json(output_path, data)
    log.info(f"📝 JSON report saved → {output_path}")
    return output_path


def export_report(
    results: Sequence[Mapping[str, Any]],
    anomalies: AnomalyReport,
    base_name: str,
    output_dir: Path,
    write_csv_file: bool = True,
    dry_run: bool = False,
) -> Dict[str, Path]:
    """
    Export episode results and anomalies.

    The JSON file holds both lists; the CSV file holds one row per episode.

    Returns:
        Dict of written file paths (or simulated paths if dry-run)
    """
    written: Dict[str, Path] = {}
    if not results:
        log.warning("No report data to export.")
        return written

    payload = {"episodes": list(results), "anomalies": anomalies.as_rows()}
    written["json"] = write_json(payload, timestamped_filename(base_name, "json", output_dir), dry_run=dry_run)
    if write_csv_file:
        written["csv"] = write_csv(results, timestamped_filename(base_name, "csv", output_dir), dry_run=dry_run)

    log.info(f"Report export completed for '{base_name}' ({'dry-run' if dry_run else 'saved'})")
    return written
