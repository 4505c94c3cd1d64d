from __future__ import annotations

from dataclasses import dataclass
import threading


@dataclass(frozen=True)
class RunStatistics:
    original_size_total: int = 0
    shrunk_size_total: int = 0
    files_processed: int = 0
    files_skipped: int = 0
    files_failed: int = 0

    @property
    def reduction_bytes(self) -> int:
        # Negative when the run made things bigger overall.
        return self.original_size_total - self.shrunk_size_total

    @property
    def reduction_percent(self) -> float:
        if self.original_size_total <= 0:
            return 0.0
        return (self.reduction_bytes / self.original_size_total) * 100.0


class StatsAccumulator:
    """
    Run-wide counters shared by every worker.

    One lock guards all of them, so a processed count and its byte totals
    always move together. summarize() freezes the accumulator; later updates
    raise RuntimeError.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._original = 0
        self._shrunk = 0
        self._processed = 0
        self._skipped = 0
        self._failed = 0
        self._closed = False

    def update(self, original_size: int, new_size: int) -> None:
        if original_size < 0 or new_size < 0:
            raise ValueError("sizes cannot be negative")
        with self._lock:
            self._check_open()
            self._original += original_size
            self._shrunk += new_size
            self._processed += 1

    def increment_skipped(self) -> None:
        with self._lock:
            self._check_open()
            self._skipped += 1

    def increment_failed(self) -> None:
        with self._lock:
            self._check_open()
            self._failed += 1

    def summarize(self) -> RunStatistics:
        with self._lock:
            self._closed = True
            return RunStatistics(
                original_size_total=self._original,
                shrunk_size_total=self._shrunk,
                files_processed=self._processed,
                files_skipped=self._skipped,
                files_failed=self._failed,
            )

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("statistics already summarized")
