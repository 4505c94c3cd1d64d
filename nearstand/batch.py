from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, TextIO, Union
import logging
import os
import stat
import sys

from .engine import SHRUNK_PREFIX, Transformer, build_transformer
from .errors import (
    DirectoryWalkEntryFailed,
    ShrinkError,
    SizeQueryFailed,
    TargetResolutionFailed,
    TransformExecutionFailed,
    UnsupportedFormat,
)
from .policy import Eligibility, decide
from .report import render_report
from .results import FileOutcome, Outcome, RunReport
from .settings import ShrinkSettings
from .stats import StatsAccumulator


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileTarget:
    path: Path


@dataclass(frozen=True)
class DirectoryTarget:
    path: Path


Target = Union[FileTarget, DirectoryTarget]


def resolve_target(raw: Union[str, Path]) -> Target:
    p = Path(raw)
    try:
        st = os.stat(p)
    except OSError as e:
        raise TargetResolutionFailed(p, f"cannot access target ({e.strerror or e})") from e

    if stat.S_ISDIR(st.st_mode):
        return DirectoryTarget(p)
    return FileTarget(p)


def walk_directory(root: Path, errors: Optional[List[ShrinkError]] = None) -> Iterable[Path]:
    """
    Depth-first walk yielding every regular file under `root` in lexical order.

    An unreadable subdirectory or entry is logged (and appended to `errors`) and the walk
    carries on with its siblings. Symlinked directories are not followed.
    """

    def _on_error(e: OSError, path: Optional[Path] = None) -> None:
        err = DirectoryWalkEntryFailed(path or e.filename or root, f"error accessing entry ({e.strerror or e})")
        log.error("%s", err)
        if errors is not None:
            errors.append(err)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        for name in sorted(filenames):
            p = Path(dirpath) / name
            try:
                regular = p.is_file()
            except OSError as e:
                # listable but not searchable directories fail here with EACCES
                _on_error(e, p)
                continue
            if not regular:
                log.debug("Ignoring non-regular entry: %s", p)
                continue
            yield p


def iter_candidates(
    targets: Sequence[Union[str, Path]],
    errors: List[ShrinkError],
) -> tuple[List[Path], int]:
    """
    Resolve targets in order and flatten them into candidate files.

    A file reached twice (given directly and again through its directory) is
    only kept the first time.
    """
    candidates: List[Path] = []
    seen: set[Path] = set()
    failed = 0

    def _add(p: Path) -> None:
        key = p.resolve()
        if key in seen:
            log.debug("Already queued: %s", p)
            return
        seen.add(key)
        candidates.append(p)

    for raw in targets:
        try:
            target = resolve_target(raw)
        except TargetResolutionFailed as e:
            log.error("Error processing target: %s", e)
            errors.append(e)
            failed += 1
            continue

        if isinstance(target, DirectoryTarget):
            for p in walk_directory(target.path, errors):
                _add(p)
        else:
            _add(target.path)

    return candidates, failed


def schedule_waves(candidates: Sequence[Path]) -> List[List[int]]:
    """
    Group candidate indexes so no file is read while another task writes it.

    shrunk_a.jpg is the output of a.jpg, so when both are candidates
    shrunk_a.jpg goes one wave after a.jpg. Chains (shrunk_shrunk_a.jpg) go
    one wave further each.
    """
    keys = {p.resolve(): i for i, p in enumerate(candidates)}
    depth: dict[int, int] = {}

    def _depth(i: int) -> int:
        if i not in depth:
            p = candidates[i]
            parent = None
            if p.name.startswith(SHRUNK_PREFIX):
                parent = keys.get((p.parent / p.name[len(SHRUNK_PREFIX):]).resolve())
            depth[i] = 0 if parent is None else _depth(parent) + 1
        return depth[i]

    waves: List[List[int]] = []
    for i in range(len(candidates)):
        d = _depth(i)
        while len(waves) <= d:
            waves.append([])
        waves[d].append(i)
    return waves


def process_file(
    path: Path,
    transformer: Transformer,
    stats: StatsAccumulator,
    reshrink: bool = False,
) -> FileOutcome:
    """Apply the skip policy to one file and shrink it if eligible."""
    decision = decide(path.name, reshrink)
    if decision is Eligibility.SKIP_ALREADY_PROCESSED:
        log.info("Skipping already shrunk image: %s", path)
        stats.increment_skipped()
        return FileOutcome(path=path, outcome=Outcome.SKIPPED, skipped_reason=decision.value)

    log.info("Attempting to shrink image: %s", path)
    try:
        result = transformer.transform(path)
    except UnsupportedFormat as e:
        log.info("Skipping unsupported file: %s", path)
        stats.increment_skipped()
        return FileOutcome(
            path=path,
            outcome=Outcome.SKIPPED,
            skipped_reason=Eligibility.SKIP_UNSUPPORTED_FORMAT.value,
            error=e,
        )
    except (TransformExecutionFailed, SizeQueryFailed) as e:
        log.error("Error processing file: %s", e)
        stats.increment_failed()
        return FileOutcome(path=path, outcome=Outcome.FAILED, error=e)

    stats.update(result.original_bytes, result.new_bytes)
    return FileOutcome(path=path, outcome=Outcome.PROCESSED, result=result)


def process_batch(
    targets: Sequence[Union[str, Path]],
    settings: Optional[ShrinkSettings] = None,
    transformer: Optional[Transformer] = None,
    out: Optional[TextIO] = None,
) -> RunReport:
    """
    Shrink every eligible image under `targets` and render the summary to `out`
    (stdout by default).

    Per-target and per-file failures are logged and recorded in the report;
    they never stop the run.
    """
    s = settings or ShrinkSettings()
    transformer = transformer or build_transformer(s)
    stats = StatsAccumulator()
    errors: List[ShrinkError] = []

    candidates, targets_failed = iter_candidates(targets, errors)

    files: List[Optional[FileOutcome]] = [None] * len(candidates)
    with ThreadPoolExecutor(max_workers=s.workers) as ex:
        for wave in schedule_waves(candidates):
            futures = {i: ex.submit(process_file, candidates[i], transformer, stats, s.reshrink) for i in wave}
            # Barrier: the next wave may read what this one wrote.
            for i, f in futures.items():
                files[i] = f.result()

    # Every file has reported before the counters are read.
    report = RunReport(
        stats=stats.summarize(),
        files=[f for f in files if f is not None],
        errors=errors,
        targets_total=len(targets),
        targets_failed=targets_failed,
    )

    render_report(report, out if out is not None else sys.stdout)
    return report
