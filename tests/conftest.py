from __future__ import annotations

import threading
from pathlib import Path

import pytest

from nearstand.engine import check_format, file_size, output_path_for, probe_sizes
from nearstand.errors import TransformExecutionFailed
from nearstand.results import TransformResult


class FakeShrinker:
    """Writes shrunk_<name> at `ratio` of the source size, no image decoding."""

    def __init__(self, ratio: float = 0.25, fail: tuple[str, ...] = ()) -> None:
        self.ratio = ratio
        self.fail = set(fail)
        self.calls: list[Path] = []
        self._lock = threading.Lock()

    def transform(self, src_path: Path) -> TransformResult:
        with self._lock:
            self.calls.append(src_path)
        check_format(src_path)
        if src_path.name in self.fail:
            raise TransformExecutionFailed(src_path, "ImageMagick exited with status 1")
        out = output_path_for(src_path)
        out.write_bytes(b"x" * int(file_size(src_path) * self.ratio))
        return probe_sizes(file_size, src_path, out)


@pytest.fixture
def shrinker() -> FakeShrinker:
    return FakeShrinker()


@pytest.fixture
def make_file():
    def _make(path: Path, size: int = 1000) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\0" * size)
        return path

    return _make
