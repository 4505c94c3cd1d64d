from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .errors import ShrinkError
from .stats import RunStatistics


@dataclass(frozen=True)
class TransformResult:
    """
    Output of shrinking a single image.

    Sizes are whatever the size probe reported right after the transform.
    The new file can be bigger than the original (already well compressed
    inputs), so the change is signed.
    """
    src_path: Path
    out_path: Path
    original_bytes: int
    new_bytes: int

    @property
    def change_bytes(self) -> int:
        return self.new_bytes - self.original_bytes

    @property
    def grew(self) -> bool:
        return self.new_bytes > self.original_bytes

    @property
    def change_symbol(self) -> str:
        return "+" if self.grew else "-"

    @property
    def reduction_percent(self) -> float:
        if self.original_bytes <= 0:
            return 0.0
        return (1 - self.new_bytes / self.original_bytes) * 100.0


class Outcome(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class FileOutcome:
    """What happened to one candidate file."""
    path: Path
    outcome: Outcome
    result: Optional[TransformResult] = None
    skipped_reason: Optional[str] = None  # "already_shrunk" | "unsupported_format"
    error: Optional[ShrinkError] = None


@dataclass
class RunReport:
    stats: RunStatistics
    files: List[FileOutcome] = field(default_factory=list)
    # Target and walk errors. Per-file errors live on FileOutcome.error.
    errors: List[ShrinkError] = field(default_factory=list)
    targets_total: int = 0
    targets_failed: int = 0

    @property
    def all_targets_failed(self) -> bool:
        return self.targets_total > 0 and self.targets_failed == self.targets_total
