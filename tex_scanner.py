#!/usr/bin/env python3
"""
tex_scanner.py

Single left-to-right fragment scanner for LaTeX-like source.

The source is cut into an ordered, gap-free list of segments:

  - "text"          plain text between fragments
  - "inline_math"   $...$  or  \\(...\\)
  - "display_math"  $$...$$, \\[...\\] or a whitelisted display environment
  - "tabular"       \\begin{tabular}...\\end{tabular}
  - "table_env"     \\begin{table}...\\end{table}

At every candidate position the rules are tried in priority order
(table_env > tabular > display math > inline math); the earliest position
wins, and at one position the first rule that matches wins.

Closers are located by plain forward search. An unterminated construct
simply does not match, and its characters end up in a text segment.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
import logging
import re

from config_loader import PreviewConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


class SegmentKind(str, Enum):
    TEXT = "text"
    INLINE_MATH = "inline_math"
    DISPLAY_MATH = "display_math"
    TABULAR = "tabular"
    TABLE_ENV = "table_env"


@dataclass(frozen=True)
class SourceSpan:
    """Half-open [start, end) character offsets into the original source."""
    start: int
    end: int

    def __post_init__(self) -> None:
        if not 0 <= self.start <= self.end:
            raise ValueError(f"Invalid span: [{self.start}, {self.end})")

    def shifted(self, delta: int) -> "SourceSpan":
        return SourceSpan(self.start + delta, self.end + delta)

    def as_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class Segment:
    """
    One contiguous slice of the source.

    raw is always source[span.start:span.end].
    """
    kind: SegmentKind
    span: SourceSpan
    raw: str

    @property
    def is_fragment(self) -> bool:
        return self.kind is not SegmentKind.TEXT

    @property
    def display_mode(self) -> bool:
        return self.kind is SegmentKind.DISPLAY_MATH

    @property
    def math_source(self) -> Optional[str]:
        """
        The string handed to the typesetter, or None for non-math segments.

        $$..$$ and \\[..\\] lose their delimiters, display environments are
        passed whole (the typesetter needs the environment), inline forms
        lose $ or \\( \\).
        """
        raw = self.raw
        if self.kind is SegmentKind.DISPLAY_MATH:
            if raw.startswith("$$") or raw.startswith("\\["):
                return raw[2:-2]
            return raw
        if self.kind is SegmentKind.INLINE_MATH:
            if raw.startswith("\\("):
                return raw[2:-2]
            return raw[1:-1]
        return None


# ---------------- Rules -------------------------------------------------------
#
# Each rule takes (source, pos, cfg) and returns the end offset of a match
# starting exactly at pos, or None.

_ENV_NAME_RE = re.compile(r"\\begin\{([^{}\n]*)\}")


def _match_environment(source: str, pos: int, name: str) -> Optional[int]:
    opener = "\\begin{" + name + "}"
    if not source.startswith(opener, pos):
        return None
    closer = "\\end{" + name + "}"
    end = source.find(closer, pos + len(opener))
    if end == -1:
        return None
    return end + len(closer)


def _match_table_env(source: str, pos: int, cfg: PreviewConfig) -> Optional[int]:
    return _match_environment(source, pos, "table")


def _match_tabular(source: str, pos: int, cfg: PreviewConfig) -> Optional[int]:
    return _match_environment(source, pos, "tabular")


def _match_delimited(source: str, pos: int, opener: str, closer: str) -> Optional[int]:
    if not source.startswith(opener, pos):
        return None
    end = source.find(closer, pos + len(opener))
    if end == -1:
        return None
    return end + len(closer)


def _match_display_math(source: str, pos: int, cfg: PreviewConfig) -> Optional[int]:
    end = _match_delimited(source, pos, "$$", "$$")
    if end is not None:
        return end

    end = _match_delimited(source, pos, "\\[", "\\]")
    if end is not None:
        return end

    m = _ENV_NAME_RE.match(source, pos)
    if m and m.group(1) in cfg.display_environments:
        return _match_environment(source, pos, m.group(1))
    return None


def _scan_escaped_until(source: str, i: int, closer: str, stop_char: Optional[str]) -> Optional[int]:
    """
    Walk forward from i until `closer` starts, treating "\\x" as one unit.

    Returns the end offset of the closer, or None when the input ends first
    (or `stop_char` shows up unescaped).
    """
    n = len(source)
    while i < n:
        if source.startswith(closer, i):
            return i + len(closer)
        ch = source[i]
        if stop_char is not None and ch == stop_char:
            return None
        if ch == "\\" and i + 1 < n and source[i + 1] != "\n":
            i += 2
            continue
        i += 1
    return None


def match_inline_math(source: str, pos: int) -> Optional[int]:
    """End offset of a $...$ or \\(...\\) span starting at pos, or None."""
    if source.startswith("$", pos):
        return _scan_escaped_until(source, pos + 1, "$", None)
    if source.startswith("\\(", pos):
        return _scan_escaped_until(source, pos + 2, "\\)", ")")
    return None


def _match_inline_math(source: str, pos: int, cfg: PreviewConfig) -> Optional[int]:
    return match_inline_math(source, pos)


RuleFn = Callable[[str, int, PreviewConfig], Optional[int]]

# Priority order matters: the first rule that matches at a position wins.
TOKEN_RULES: tuple[tuple[str, SegmentKind, RuleFn], ...] = (
    ("table_env", SegmentKind.TABLE_ENV, _match_table_env),
    ("tabular", SegmentKind.TABULAR, _match_tabular),
    ("display_math", SegmentKind.DISPLAY_MATH, _match_display_math),
    ("inline_math", SegmentKind.INLINE_MATH, _match_inline_math),
)

# Every rule opens with "\" or "$"
_CANDIDATE_RE = re.compile(r"[\\$]")


def match_fragment_at(
    source: str,
    pos: int,
    cfg: PreviewConfig = DEFAULT_CONFIG,
) -> Optional[tuple[str, SegmentKind, int]]:
    """Try every rule at `pos` in priority order; return (rule, kind, end) or None."""
    for rule_name, kind, rule in TOKEN_RULES:
        end = rule(source, pos, cfg)
        if end is not None:
            return rule_name, kind, end
    return None


def scan_fragments(source: str, cfg: PreviewConfig = DEFAULT_CONFIG) -> list[Segment]:
    """
    Cut `source` into ordered, non-overlapping segments covering all of it.
    """
    segments: list[Segment] = []
    last_end = 0
    pos = 0

    def emit_text(upto: int) -> None:
        if upto > last_end:
            segments.append(
                Segment(SegmentKind.TEXT, SourceSpan(last_end, upto), source[last_end:upto])
            )

    while True:
        m = _CANDIDATE_RE.search(source, pos)
        if not m:
            break
        start = m.start()

        hit = match_fragment_at(source, start, cfg)
        if hit is None:
            pos = start + 1
            continue

        rule_name, kind, end = hit
        emit_text(start)
        segments.append(Segment(kind, SourceSpan(start, end), source[start:end]))
        logger.debug("fragment %s at [%d, %d)", rule_name, start, end)
        last_end = end
        pos = end

    emit_text(len(source))
    return segments


def split_line_breaks(text: str, base: int = 0) -> list[tuple[Optional[str], int]]:
    """
    Split a text run on the LaTeX hard line break "\\\\".

    Returns (piece, offset) pairs; a line break is (None, offset of the
    marker). Offsets are shifted by `base`. Empty pieces are dropped:

      "a\\\\\\\\b" -> [("a", 0), (None, 1), (None, 3), ("b", 5)]
    """
    out: list[tuple[Optional[str], int]] = []
    pos = 0
    while True:
        idx = text.find("\\\\", pos)
        end = len(text) if idx == -1 else idx
        if end > pos:
            out.append((text[pos:end], base + pos))
        if idx == -1:
            break
        out.append((None, base + idx))
        pos = idx + 2
    return out
