from __future__ import annotations

from pathlib import Path
from typing import Union


class ShrinkError(Exception):
    """Base for every per-target and per-file failure of a run."""

    def __init__(self, path: Union[str, Path], message: str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = Path(path)
        self.message = message


class TargetResolutionFailed(ShrinkError):
    pass


class DirectoryWalkEntryFailed(ShrinkError):
    pass


class UnsupportedFormat(ShrinkError):
    """Expected condition; the orchestrator treats it as a skip."""


class TransformExecutionFailed(ShrinkError):
    pass


class SizeQueryFailed(ShrinkError):
    # The transformed file may already exist on disk when this is raised.
    pass
