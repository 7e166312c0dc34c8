"""
In-process model of one editing session.

The browser owns the real editor widget; this module mirrors its contract
(text, {line, ch} positions, replace-range) so the preview debounce and the
completion menu rules can run and be tested without a browser.

Everything is single-threaded: timers are polled against an injectable
clock instead of running in the background.
"""
from __future__ import annotations

from typing import Callable, Optional
import logging
import time

from completion_catalog import CompletionCatalog, DEFAULT_CATALOG
from config_loader import PreviewConfig, DEFAULT_CONFIG
from editor_actions import EditResult, handle_enter
from math_renderer import Typesetter
from suggestion_formatter import AppliedCompletion, apply_candidate
from tex_completion import (
    CompletionResult,
    resolve_completion,
    should_trigger_on_cursor,
    should_trigger_on_input,
)
from tex_to_html import PreviewResult, render_preview

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class TextDocument:
    """Plain text with line/column <-> offset conversion."""

    def __init__(self, text: str = ""):
        self._text = text

    def get_text(self) -> str:
        return self._text

    def set_text(self, text: str) -> None:
        self._text = text

    def __len__(self) -> int:
        return len(self._text)

    def _lines(self) -> list[str]:
        return self._text.split("\n")

    def line_count(self) -> int:
        return len(self._lines())

    def get_line(self, line: int) -> str:
        lines = self._lines()
        if not 0 <= line < len(lines):
            return ""
        return lines[line]

    def line_start(self, line: int) -> int:
        lines = self._lines()
        line = max(0, min(line, len(lines) - 1))
        return sum(len(l) + 1 for l in lines[:line])

    def pos_from_index(self, index: int) -> dict[str, int]:
        index = max(0, min(index, len(self._text)))
        line = self._text.count("\n", 0, index)
        ch = index - (self._text.rfind("\n", 0, index) + 1)
        return {"line": line, "ch": ch}

    def index_from_pos(self, pos: dict[str, int]) -> int:
        lines = self._lines()
        line = max(0, min(pos.get("line", 0), len(lines) - 1))
        ch = max(0, min(pos.get("ch", 0), len(lines[line])))
        return self.line_start(line) + ch

    def replace_range(self, text: str, start: int, end: Optional[int] = None) -> int:
        """Replace [start, end) with `text`; returns the offset after the insertion."""
        if end is None:
            end = start
        start = max(0, min(start, len(self._text)))
        end = max(start, min(end, len(self._text)))
        self._text = self._text[:start] + text + self._text[end:]
        return start + len(text)


def resolve_at_offset(
    text: str,
    offset: int,
    catalog: CompletionCatalog = DEFAULT_CATALOG,
) -> Optional[CompletionResult]:
    """Completion at an absolute offset of a whole document."""
    doc = TextDocument(text)
    pos = doc.pos_from_index(offset)
    return resolve_completion(
        doc.get_line(pos["line"]),
        pos["ch"],
        document=text,
        catalog=catalog,
        line_start=doc.line_start(pos["line"]),
    )


class Debouncer:
    """
    Trailing-edge debounce: fires once, `delay_ms` after the last touch().

    poll() must be called to observe the firing.
    """

    def __init__(self, delay_ms: int, clock: Clock = time.monotonic):
        self.delay = delay_ms / 1000.0
        self._clock = clock
        self._deadline: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    def touch(self) -> None:
        self._deadline = self._clock() + self.delay

    def cancel(self) -> None:
        self._deadline = None

    def poll(self) -> bool:
        if self._deadline is None or self._clock() < self._deadline:
            return False
        self._deadline = None
        return True


class EditorSession:
    def __init__(
        self,
        typesetter: Typesetter,
        *,
        text: str = "",
        cfg: PreviewConfig = DEFAULT_CONFIG,
        catalog: CompletionCatalog = DEFAULT_CATALOG,
        clock: Clock = time.monotonic,
        auto_compile: bool = True,
    ):
        self.typesetter = typesetter
        self.cfg = cfg
        self.catalog = catalog
        self.document = TextDocument(text)
        self.cursor = len(text)
        self.auto_compile = auto_compile
        self.preview: Optional[PreviewResult] = None
        self.compile_count = 0
        self.menu: Optional[CompletionResult] = None
        self._render_timer = Debouncer(cfg.debounce_ms, clock)
        self._followup_timer = Debouncer(cfg.followup_delay_ms, clock)

    # ---------- preview ----------

    def _content_changed(self) -> None:
        if self.auto_compile:
            self._render_timer.touch()

    def set_text(self, text: str) -> None:
        self.document.set_text(text)
        self.cursor = min(self.cursor, len(text))
        self._content_changed()

    def compile_now(self) -> PreviewResult:
        """Render immediately, dropping any pending debounced render."""
        self._render_timer.cancel()
        self.preview = render_preview(self.document.get_text(), self.typesetter, self.cfg)
        self.compile_count += 1
        return self.preview

    @property
    def render_pending(self) -> bool:
        return self._render_timer.pending

    def poll(self) -> None:
        """Run whatever timers are due: debounced render, sub-menu re-open."""
        if self._render_timer.poll():
            self.compile_now()
        if self._followup_timer.poll():
            logger.debug("re-opening completion at %d", self.cursor)
            self.request_completion()

    # ---------- editing ----------

    def type_text(self, inserted: str) -> Optional[CompletionResult]:
        """
        Insert at the cursor like a keystroke; may open the completion menu.

        An open menu is recomputed at the new cursor, or closed when the
        typed text does not trigger completion.
        """
        self.cursor = self.document.replace_range(inserted, self.cursor)
        self._content_changed()
        self.close_menu()
        if should_trigger_on_input(inserted):
            return self.request_completion()
        return None

    def delete_backward(self, count: int = 1) -> None:
        start = max(0, self.cursor - count)
        self.cursor = self.document.replace_range("", start, self.cursor)
        self._content_changed()
        self.close_menu()

    def move_cursor(self, offset: int) -> Optional[CompletionResult]:
        self.cursor = max(0, min(offset, len(self.document)))
        # the open menu's range belongs to the old cursor
        self.close_menu()
        pos = self.document.pos_from_index(self.cursor)
        line_to_cursor = self.document.get_line(pos["line"])[: pos["ch"]]
        if should_trigger_on_cursor(line_to_cursor, self.catalog):
            return self.request_completion()
        return None

    def press_enter(self) -> EditResult:
        result = handle_enter(self.document.get_text(), self.cursor, self.cfg)
        if result is None:
            self.cursor = self.document.replace_range("\n", self.cursor)
            result = EditResult(text=self.document.get_text(), cursor=self.cursor)
        else:
            self.document.set_text(result.text)
            self.cursor = result.cursor
        self._content_changed()
        return result

    # ---------- completion ----------

    def request_completion(self) -> Optional[CompletionResult]:
        """Open the menu at the cursor. Refused while a menu is already open."""
        if self.menu is not None:
            return None
        result = resolve_at_offset(self.document.get_text(), self.cursor, self.catalog)
        if result is not None and result.candidates:
            self.menu = result
        return result

    def select(self, index: int) -> AppliedCompletion:
        if self.menu is None:
            raise RuntimeError("no completion menu is open")
        candidate = self.menu.candidates[index]
        applied = apply_candidate(self.document.get_text(), self.menu, candidate)
        self.document.set_text(applied.text)
        self.cursor = applied.cursor
        self.menu = None
        self._content_changed()
        if applied.reopen:
            self._followup_timer.touch()
        return applied

    def close_menu(self) -> None:
        self.menu = None
