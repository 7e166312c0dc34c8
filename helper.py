from __future__ import annotations

from typing import TextIO
import sys

from tex_scanner import Segment

GRAY = "\033[90m"
RESET = "\033[0m"


def describe_segment(segment: Segment, *, width: int = 40) -> str:
    """One-line summary of a segment: kind, span and a shortened raw repr."""
    raw = segment.raw if len(segment.raw) <= width else segment.raw[: width - 1] + "…"
    return f"{segment.kind.value:<13} [{segment.span.start}, {segment.span.end}) {raw!r}"


def print_event_gray(text: str, *, stream: TextIO | None = None) -> None:
    """
    Print scanner/debug output in gray using ANSI escape codes.

    Colour is skipped when the stream is not a terminal.
    """
    out = stream if stream is not None else sys.stdout
    if getattr(out, "isatty", lambda: False)():
        print(f"{GRAY}{text}{RESET}", file=out)
    else:
        print(text, file=out)
