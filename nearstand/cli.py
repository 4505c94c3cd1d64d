from __future__ import annotations

import argparse
import logging
import math
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .batch import process_batch
from .report import build_report, save_report
from .settings import ShrinkSettings


log = logging.getLogger(__name__)


def _setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger("PIL").setLevel(logging.WARNING)


def _positive_int(text: str) -> int:
    n = int(text)
    if n < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return n


def _timeout(text: str) -> Optional[float]:
    """
    Seconds as a float. "0" or "none" disables the timeout.
    """
    t = text.strip().lower()
    if t in ("0", "none"):
        return None
    value = float(t)
    if not math.isfinite(value) or value < 0:
        raise argparse.ArgumentTypeError("timeout must be a finite, non-negative number")
    return value or None


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="nearstand",
        description="Shrink image files in bulk",
    )
    sub = p.add_subparsers(dest="command", required=True)

    shrink = sub.add_parser("shrink", help="Shrink image file(s)")
    shrink.add_argument("inputs", nargs="+", metavar="file_or_directory", help="Files and/or folders to process")
    shrink.add_argument("--reshrink", action="store_true", help="Allow reshrinking of already shrunk images")

    # Execution
    shrink.add_argument(
        "--backend",
        choices=("magick", "pillow"),
        default="magick",
        help="Transformer to use (default: magick)",
    )
    shrink.add_argument("--convert-bin", default="convert", help="ImageMagick executable (default: convert)")
    shrink.add_argument(
        "--timeout",
        type=_timeout,
        default=300.0,
        help="Seconds allowed per image, 0 to wait forever (default: 300)",
    )
    shrink.add_argument("--workers", type=_positive_int, default=4, help="Images shrunk in parallel (default: 4)")

    # Output
    shrink.add_argument("--report", default=None, help="Also write a JSON report (CSV if the name ends in .csv)")

    verbosity = shrink.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")

    sub.add_parser("version", help="Print the version number of nearstand")

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        print(f"nearstand {__version__}")
        return 0

    if args.command == "shrink":
        _setup_logging(args.verbose, args.quiet)

        settings = ShrinkSettings(
            reshrink=bool(args.reshrink),
            backend=args.backend,
            convert_bin=str(args.convert_bin),
            timeout=args.timeout,
            workers=int(args.workers),
        )

        report = process_batch(args.inputs, settings, out=sys.stdout)

        if args.report:
            report_path = Path(args.report)
            save_report(build_report(report), report_path)
            log.info("Report written: %s", report_path)

        if report.all_targets_failed:
            log.error("None of the given targets could be resolved")
            return 1
        return 0

    parser.print_help()
    return 2
