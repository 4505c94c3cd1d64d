from __future__ import annotations

import csv
import io
import json
from pathlib import Path

from nearstand.errors import TargetResolutionFailed, TransformExecutionFailed
from nearstand.report import (
    build_report,
    render_aggregate,
    render_file_stats,
    render_report,
    save_report,
)
from nearstand.results import FileOutcome, Outcome, RunReport, TransformResult
from nearstand.stats import RunStatistics


def _result(original, new):
    return TransformResult(Path("/img/photo.jpg"), Path("/img/shrunk_photo.jpg"), original, new)


def _report():
    return RunReport(
        stats=RunStatistics(10_000, 2_500, files_processed=1, files_skipped=1, files_failed=1),
        files=[
            FileOutcome(Path("/img/photo.jpg"), Outcome.PROCESSED, result=_result(10_000, 2_500)),
            FileOutcome(Path("/img/shrunk_x.jpg"), Outcome.SKIPPED, skipped_reason="already_shrunk"),
            FileOutcome(
                Path("/img/bad.png"),
                Outcome.FAILED,
                error=TransformExecutionFailed("/img/bad.png", "ImageMagick exited with status 1"),
            ),
        ],
        errors=[TargetResolutionFailed("/missing", "cannot access target")],
        targets_total=2,
        targets_failed=1,
    )


def test_file_stats_shrink():
    out = io.StringIO()
    render_file_stats(out, _result(10_000, 2_500))
    text = out.getvalue()

    assert text.startswith("Metric             Before   After    Change\n")
    assert "-7.5 kB" in text
    assert "/img/shrunk_photo.jpg" in text
    assert "Reduction: 75.00%" in text


def test_file_stats_growth_uses_plus():
    out = io.StringIO()
    render_file_stats(out, _result(1_000, 1_500))
    text = out.getvalue()

    assert "+500 Bytes" in text
    assert "Reduction: -50.00%" in text


def test_aggregate_block():
    out = io.StringIO()
    render_aggregate(out, RunStatistics(2_000_000, 500_000, files_processed=1234))
    text = out.getvalue()

    assert "Total files processed: 1,234" in text
    assert "Total original size: 2.0 MB" in text
    assert "Total reduced size: 500.0 kB" in text
    assert "Total size reduction: 1.5 MB (75.00%)" in text


def test_aggregate_growth_is_worded_as_increase():
    out = io.StringIO()
    render_aggregate(out, RunStatistics(1_000, 1_500, files_processed=1))
    text = out.getvalue()

    assert "Total size increase: 500 Bytes (50.00%)" in text
    assert "reduction" not in text


def test_render_report_lists_only_processed_files():
    out = io.StringIO()
    render_report(_report(), out)
    text = out.getvalue()

    assert text.count("Metric ") == 1
    assert "bad.png" not in text
    assert text.rstrip().endswith("(75.00%)")


def test_json_report(tmp_path):
    path = tmp_path / "out" / "report.json"
    save_report(build_report(_report()), path)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["created_utc"].endswith("Z")
    assert data["summary"]["files_processed"] == 1
    assert data["summary"]["targets_failed"] == 1
    assert [f["outcome"] for f in data["files"]] == ["processed", "skipped", "failed"]
    assert data["files"][0]["reduction_percent"] == 75.0
    assert "status 1" in data["files"][2]["error"]
    assert data["errors"] == ["cannot access target: /missing"]


def test_csv_report(tmp_path):
    path = tmp_path / "report.csv"
    save_report(build_report(_report()), path)

    with path.open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 3
    assert rows[0]["new_bytes"] == "2500"
    assert rows[1]["skipped_reason"] == "already_shrunk"
