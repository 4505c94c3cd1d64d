from __future__ import annotations

import csv
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, TextIO

import humanize

from .results import FileOutcome, Outcome, RunReport, TransformResult
from .stats import RunStatistics


def _size(n: int) -> str:
    return humanize.naturalsize(n)


def render_file_stats(out: TextIO, r: TransformResult) -> None:
    out.write("Metric             Before   After    Change\n")
    out.write("------             ------   -----    ------\n")
    out.write(
        f"{'File Size':<18} {_size(r.original_bytes):<8} {_size(r.new_bytes):<8} "
        f"{r.change_symbol}{_size(abs(r.change_bytes))}\n"
    )
    out.write(f"{'File Path':<18} {str(r.src_path):<8} {str(r.out_path):<8}\n")
    out.write(f"Reduction: {r.reduction_percent:.2f}%\n")


def render_aggregate(out: TextIO, s: RunStatistics) -> None:
    out.write("\nAggregate Statistics:\n")
    out.write(f"Total files processed: {humanize.intcomma(s.files_processed)}\n")
    out.write(f"Total files skipped: {humanize.intcomma(s.files_skipped)}\n")
    out.write(f"Total files failed: {humanize.intcomma(s.files_failed)}\n")
    out.write(f"Total original size: {_size(s.original_size_total)}\n")
    out.write(f"Total reduced size: {_size(s.shrunk_size_total)}\n")

    if s.reduction_bytes >= 0:
        out.write(f"Total size reduction: {_size(s.reduction_bytes)} ({s.reduction_percent:.2f}%)\n")
    else:
        out.write(f"Total size increase: {_size(-s.reduction_bytes)} ({-s.reduction_percent:.2f}%)\n")


def render_report(report: RunReport, out: TextIO) -> None:
    for f in report.files:
        if f.result is not None:
            render_file_stats(out, f.result)
    render_aggregate(out, report.stats)
    out.flush()


# ---------------- machine-readable reports ----------------

@dataclass(frozen=True)
class FileReport:
    src_path: str
    outcome: str
    out_path: Optional[str]
    original_bytes: Optional[int]
    new_bytes: Optional[int]
    reduction_percent: Optional[float]
    skipped_reason: Optional[str]
    error: Optional[str]


@dataclass(frozen=True)
class BatchReport:
    created_utc: str
    summary: dict
    files: List[FileReport]
    errors: List[str]


def _file_report(f: FileOutcome) -> FileReport:
    r = f.result
    return FileReport(
        src_path=str(f.path),
        outcome=f.outcome.value,
        out_path=str(r.out_path) if r else None,
        original_bytes=r.original_bytes if r else None,
        new_bytes=r.new_bytes if r else None,
        reduction_percent=round(r.reduction_percent, 2) if r else None,
        skipped_reason=f.skipped_reason,
        # Unsupported formats are a skip, not an error worth reporting.
        error=str(f.error) if f.error and f.outcome is Outcome.FAILED else None,
    )


def build_report(report: RunReport) -> BatchReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    s = report.stats
    summary_dict = {
        "files_processed": s.files_processed,
        "files_skipped": s.files_skipped,
        "files_failed": s.files_failed,
        "original_size_total": s.original_size_total,
        "shrunk_size_total": s.shrunk_size_total,
        "reduction_bytes": s.reduction_bytes,
        "reduction_percent": round(s.reduction_percent, 2),
        "targets_total": report.targets_total,
        "targets_failed": report.targets_failed,
    }

    return BatchReport(
        created_utc=created_utc,
        summary=summary_dict,
        files=[_file_report(f) for f in report.files],
        errors=[str(e) for e in report.errors],
    )


def save_report_json(report: BatchReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)


def save_report_csv(report: BatchReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = list(FileReport.__dataclass_fields__)
    with path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for row in report.files:
            w.writerow(asdict(row))


def save_report(report: BatchReport, path: Path) -> None:
    """Write JSON, or CSV when `path` ends in .csv."""
    if Path(path).suffix.lower() == ".csv":
        save_report_csv(report, path)
    else:
        save_report_json(report, path)
