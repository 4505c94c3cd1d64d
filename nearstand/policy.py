from __future__ import annotations

from enum import Enum

from .engine import SHRUNK_PREFIX


class Eligibility(str, Enum):
    PROCESS = "process"
    SKIP_ALREADY_PROCESSED = "already_shrunk"
    SKIP_UNSUPPORTED_FORMAT = "unsupported_format"


def decide(name: str, reshrink: bool = False) -> Eligibility:
    """
    Decide up front whether a file should be handed to the transformer.

    Only the "already shrunk" rule is applied here. Format support is left to
    the transformer, which raises UnsupportedFormat; callers map that to
    SKIP_UNSUPPORTED_FORMAT.
    """
    if not reshrink and name.startswith(SHRUNK_PREFIX):
        return Eligibility.SKIP_ALREADY_PROCESSED
    return Eligibility.PROCESS
