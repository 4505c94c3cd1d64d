from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Literal, Optional


# Transformer implementations we can dispatch to.
# "magick" shells out to ImageMagick, "pillow" runs in-process.
Backend = Literal["magick", "pillow"]


@dataclass(frozen=True)
class ShrinkSettings:
    """
    Runtime knobs for a shrink run.

    The resize/quality policy itself is fixed (see engine.py); only how and
    where it runs is configurable here.
    """

    # ----- Eligibility -----
    # When False, files already carrying the "shrunk_" prefix are skipped.
    reshrink: bool = False

    # ----- Transformer -----
    backend: Backend = "magick"
    convert_bin: str = "convert"
    # Seconds allowed per external invocation. None waits forever.
    timeout: Optional[float] = 300.0

    # ----- Scheduling -----
    workers: int = 4

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.timeout is not None and not (math.isfinite(self.timeout) and self.timeout > 0):
            raise ValueError("timeout must be a positive number of seconds")
