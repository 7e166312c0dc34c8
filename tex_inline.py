#!/usr/bin/env python3
"""
tex_inline.py

Inline content rendering: find $...$ and \\(...\\) spans inside arbitrary
text (table cells, captions) and typeset them, alternating with plain text.

Typesetting failures never escape this module. A failing span becomes an
error-styled node that keeps the raw source and the error message, and the
failure is recorded on the RenderReport of the current pass.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
import logging
import re

from math_renderer import MathRenderError, Typesetter, clean_error_message
from preview_nodes import RenderedNode, element, markup_node, text_node
from tex_scanner import SourceSpan, match_inline_math

logger = logging.getLogger(__name__)

_INLINE_START_RE = re.compile(r"\$|\\\(")


@dataclass
class RenderReport:
    """
    Errors collected during one render pass.

    Only the first error becomes the user-visible banner.
    """
    errors: list[str] = field(default_factory=list)

    def record_error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def banner(self) -> Optional[str]:
        return self.errors[0] if self.errors else None


def inline_math_source(raw: str) -> str:
    """Strip the $ or \\( \\) delimiters of an inline math span."""
    if raw.startswith("\\("):
        return raw[2:-2]
    return raw[1:-1]


def _math_error_node(
    raw: str, message: str, span: Optional[SourceSpan], report: RenderReport
) -> RenderedNode:
    report.record_error(message)
    return element(
        "span",
        [text_node(raw)],
        classes=["math-error-inline"],
        span=span,
        attrs={"title": message},
    )


def render_math_node(
    raw: str,
    math_source: str,
    *,
    display_mode: bool,
    span: Optional[SourceSpan],
    typesetter: Typesetter,
    report: RenderReport,
) -> RenderedNode:
    """
    Typeset one math span and wrap it for click-sync.

    Whatever the typesetter raises becomes span.math-error-inline with the
    raw text and the message as title.
    """
    try:
        markup = typesetter.render(math_source, display_mode)
    except MathRenderError as e:
        message = clean_error_message(e.message)
        logger.debug("math error at %s: %s", span, message)
        return _math_error_node(raw, message, span, report)
    except Exception as e:
        logger.exception("typesetter failed at %s", span)
        message = clean_error_message(str(e)) or type(e).__name__
        return _math_error_node(raw, message, span, report)

    return element(
        "div" if display_mode else "span",
        [markup_node(markup)],
        classes=["math-display-wrapper" if display_mode else "math-inline-wrapper"],
        span=span,
    )


def render_inline_content(
    text: str,
    typesetter: Typesetter,
    report: RenderReport,
    *,
    base: Optional[int] = None,
) -> list[RenderedNode]:
    """
    Render `text` as alternating plain runs and inline math.

    base: absolute source offset of text[0]; when given, math nodes are
    tagged with absolute spans.
    """
    nodes: list[RenderedNode] = []
    last = 0
    pos = 0

    while True:
        m = _INLINE_START_RE.search(text, pos)
        if not m:
            break
        start = m.start()
        end = match_inline_math(text, start)
        if end is None:
            pos = start + 1
            continue

        if start > last:
            nodes.append(text_node(text[last:start]))

        raw = text[start:end]
        span = SourceSpan(base + start, base + end) if base is not None else None
        nodes.append(
            render_math_node(
                raw,
                inline_math_source(raw),
                display_mode=False,
                span=span,
                typesetter=typesetter,
                report=report,
            )
        )
        last = end
        pos = end

    if last < len(text):
        nodes.append(text_node(text[last:]))
    return nodes
