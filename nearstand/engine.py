from __future__ import annotations

from pathlib import Path
import logging
import os
import subprocess
from typing import Callable, Optional, Protocol

from PIL import Image, ImageSequence

from .errors import SizeQueryFailed, TransformExecutionFailed, UnsupportedFormat
from .results import TransformResult
from .settings import ShrinkSettings


log = logging.getLogger(__name__)

SUPPORTED_EXTS = {".jpg", ".jpeg", ".png", ".gif"}

# Prefix of every file we write. Also how already-shrunk files are recognised.
SHRUNK_PREFIX = "shrunk_"

# Fixed transformation policy.
RESIZE_PERCENT = 50
QUALITY = 60

SizeProbe = Callable[[Path], int]


class Transformer(Protocol):
    def transform(self, src_path: Path) -> TransformResult:
        ...


def file_size(p: Path) -> int:
    """Byte length of `p` from filesystem metadata. Raises OSError."""
    return os.stat(p).st_size


def is_supported(p: Path) -> bool:
    return Path(p).suffix.lower() in SUPPORTED_EXTS


def output_path_for(src_path: Path) -> Path:
    # photo.jpg -> shrunk_photo.jpg, same directory
    src_path = Path(src_path)
    return src_path.parent / f"{SHRUNK_PREFIX}{src_path.name}"


def check_format(src_path: Path) -> None:
    if not is_supported(src_path):
        raise UnsupportedFormat(src_path, f"unsupported file format '{src_path.suffix.lower()}'")


def probe_sizes(size_probe: SizeProbe, src_path: Path, out_path: Path) -> TransformResult:
    try:
        original = size_probe(src_path)
    except OSError as e:
        raise SizeQueryFailed(src_path, f"error getting original file size ({e})") from e

    try:
        new = size_probe(out_path)
    except OSError as e:
        raise SizeQueryFailed(out_path, f"error getting new file size ({e})") from e

    return TransformResult(
        src_path=src_path,
        out_path=out_path,
        original_bytes=original,
        new_bytes=new,
    )


class ImageMagickShrinker:
    """Runs `convert SRC -resize 50% -quality 60 DST` for each image."""

    def __init__(
        self,
        convert_bin: str = "convert",
        timeout: Optional[float] = None,
        size_probe: SizeProbe = file_size,
    ) -> None:
        self.convert_bin = convert_bin
        self.timeout = timeout
        self.size_probe = size_probe

    def build_command(self, src_path: Path, out_path: Path) -> list[str]:
        return [
            self.convert_bin, str(src_path),
            "-resize", f"{RESIZE_PERCENT}%",
            "-quality", str(QUALITY),
            str(out_path),
        ]

    def transform(self, src_path: Path) -> TransformResult:
        src_path = Path(src_path)
        check_format(src_path)

        out_path = output_path_for(src_path)
        cmd = self.build_command(src_path, out_path)
        log.debug("CMD: %s", " ".join(cmd))

        try:
            proc = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise TransformExecutionFailed(
                src_path, f"ImageMagick did not finish within {self.timeout:g}s"
            ) from e
        except OSError as e:
            raise TransformExecutionFailed(src_path, f"could not start '{self.convert_bin}' ({e})") from e

        if proc.returncode != 0:
            raise TransformExecutionFailed(
                src_path, f"ImageMagick exited with status {proc.returncode}"
            )

        return probe_sizes(self.size_probe, src_path, out_path)


class PillowShrinker:
    """Same policy as ImageMagickShrinker, done in-process with Pillow."""

    def __init__(self, size_probe: SizeProbe = file_size) -> None:
        self.size_probe = size_probe

    def transform(self, src_path: Path) -> TransformResult:
        src_path = Path(src_path)
        check_format(src_path)

        out_path = output_path_for(src_path)
        try:
            with Image.open(src_path) as im:
                _save_shrunk(im, out_path)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise TransformExecutionFailed(src_path, f"Pillow could not shrink image ({e})") from e

        return probe_sizes(self.size_probe, src_path, out_path)


def _half(size: tuple[int, int]) -> tuple[int, int]:
    w, h = size
    return (
        max(1, (w * RESIZE_PERCENT) // 100),
        max(1, (h * RESIZE_PERCENT) // 100),
    )


def _save_shrunk(im: Image.Image, out_path: Path) -> None:
    fmt = im.format or "PNG"

    if fmt == "GIF" and getattr(im, "n_frames", 1) > 1:
        frames = [f.copy().resize(_half(f.size), Image.Resampling.LANCZOS) for f in ImageSequence.Iterator(im)]
        frames[0].save(
            out_path,
            format="GIF",
            save_all=True,
            append_images=frames[1:],
            loop=im.info.get("loop", 0),
            duration=im.info.get("duration", 100),
            optimize=True,
        )
        return

    im.load()
    small = im.resize(_half(im.size), Image.Resampling.LANCZOS)

    kwargs: dict = {}
    if fmt == "JPEG":
        if small.mode not in ("RGB", "L", "CMYK"):
            small = small.convert("RGB")
        kwargs["quality"] = QUALITY
        kwargs["optimize"] = True
    elif fmt == "PNG":
        # PNG is lossless; quality 60 in ImageMagick terms is zlib level 6
        kwargs["compress_level"] = QUALITY // 10
        kwargs["optimize"] = True
    elif fmt == "GIF":
        kwargs["optimize"] = True

    small.save(out_path, format=fmt, **kwargs)


def build_transformer(s: ShrinkSettings, size_probe: SizeProbe = file_size) -> Transformer:
    if s.backend == "magick":
        return ImageMagickShrinker(convert_bin=s.convert_bin, timeout=s.timeout, size_probe=size_probe)
    if s.backend == "pillow":
        return PillowShrinker(size_probe=size_probe)
    raise ValueError(f"Unknown backend: {s.backend}")
