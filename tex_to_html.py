#!/usr/bin/env python3
"""
tex_to_html.py

LaTeX-like source -> clickable HTML preview, built on:

- config_loader.load_config() for settings + regexes
- tex_scanner.scan_fragments() for the fragment stream
- tex_tables / tex_inline for tables, captions and inline math
- preview_nodes for the node tree, source-position map and HTML

Each call renders from scratch; nothing is kept between passes.
A failure inside one fragment never stops its siblings from rendering.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import argparse
import html
import logging
import sys

from config_loader import PreviewConfig, DEFAULT_CONFIG, load_config_or_default
from math_renderer import LatexSvgTypesetter, Typesetter
from preview_nodes import RenderedNode, SourcePositionMap, element, text_node, to_html
from tex_inline import RenderReport, render_math_node
from tex_reader import read_tex_source, safe_input_path
from tex_scanner import Segment, SegmentKind, SourceSpan, scan_fragments, split_line_breaks
from tex_tables import render_table_environment, render_tabular

logger = logging.getLogger(__name__)


@dataclass
class PreviewResult:
    source: str
    segments: list[Segment]
    root: RenderedNode
    position_map: SourcePositionMap
    report: RenderReport

    @property
    def error_banner(self) -> Optional[str]:
        return self.report.banner

    @property
    def html(self) -> str:
        return to_html(self.root, self.position_map)

    def lookup(self, node_id: int) -> Optional[SourceSpan]:
        return self.position_map.lookup(node_id)


def render_text_segment(segment: Segment) -> list[RenderedNode]:
    """Plain text with '\\\\' turned into <br />; each run keeps its span."""
    nodes: list[RenderedNode] = []
    for piece, offset in split_line_breaks(segment.raw, segment.span.start):
        if piece is None:
            nodes.append(element("br"))
        else:
            nodes.append(text_node(piece, span=SourceSpan(offset, offset + len(piece))))
    return nodes


def render_segment(
    segment: Segment,
    typesetter: Typesetter,
    report: RenderReport,
    cfg: PreviewConfig = DEFAULT_CONFIG,
) -> list[RenderedNode]:
    if segment.kind is SegmentKind.TEXT:
        return render_text_segment(segment)

    if segment.kind is SegmentKind.TABLE_ENV:
        node = render_table_environment(
            segment.raw, typesetter, report, cfg, base=segment.span.start
        )
        node.span = segment.span
        return [node]

    if segment.kind is SegmentKind.TABULAR:
        node = render_tabular(segment.raw, typesetter, report, cfg, base=segment.span.start)
        node.span = segment.span
        return [node]

    return [
        render_math_node(
            segment.raw,
            segment.math_source or "",
            display_mode=segment.display_mode,
            span=segment.span,
            typesetter=typesetter,
            report=report,
        )
    ]


def _fragment_failure_node(segment: Segment, message: str) -> RenderedNode:
    return element(
        "span",
        [text_node(segment.raw)],
        classes=["render-error"],
        span=segment.span,
        attrs={"title": message},
    )


def render_preview(
    source: str,
    typesetter: Typesetter,
    cfg: PreviewConfig = DEFAULT_CONFIG,
) -> PreviewResult:
    """
    Render `source` into a preview tree.

    Returns the segments, the root node (div#preview-content), the position
    map and the report holding the error banner.
    """
    segments = scan_fragments(source, cfg)
    report = RenderReport()
    root = element("div", attrs={"id": "preview-content"})

    for segment in segments:
        try:
            root.extend(render_segment(segment, typesetter, report, cfg))
        except Exception as e:
            # isolate the failure to this fragment
            logger.exception("failed to render %s at %s", segment.kind.value, segment.span)
            message = f"Failed to render {segment.kind.value}: {e}"
            report.record_error(message)
            root.append(_fragment_failure_node(segment, message))

    logger.debug("rendered %d segments, %d errors", len(segments), len(report.errors))
    return PreviewResult(
        source=source,
        segments=segments,
        root=root,
        position_map=SourcePositionMap.build(root),
        report=report,
    )


def render_error_banner(message: Optional[str]) -> str:
    if not message:
        return ""
    return (
        '<div id="preview-error" role="alert">'
        f"<strong>Error:</strong> {html.escape(message, quote=False)}"
        "</div>\n"
    )


def open_html_document(title: str) -> str:
    """Return the HTML prolog."""
    return (
        "<!doctype html>\n"
        "<html lang=\"en\">\n"
        "<head>\n"
        "  <meta charset=\"utf-8\" />\n"
        f"  <title>{html.escape(title)}</title>\n"
        "  <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />\n"
        '  <link rel="stylesheet" href="/static/preview.css" />\n'
        "</head>\n"
        "<body>\n"
    )


def close_html_document() -> str:
    """Return the HTML epilog."""
    return "</body>\n</html>\n"


def render_tex_to_html_document(
    source: str,
    typesetter: Typesetter,
    cfg: PreviewConfig = DEFAULT_CONFIG,
    *,
    title: str = "Preview",
) -> str:
    result = render_preview(source, typesetter, cfg)
    return (
        open_html_document(title)
        + render_error_banner(result.error_banner)
        + result.html
        + "\n"
        + close_html_document()
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Render LaTeX-like source to an HTML preview.")
    parser.add_argument("input", help="Input .tex file (body only, or a full document)")
    parser.add_argument("-o", "--output", default="out.html", help="Output HTML file (default: out.html)")
    parser.add_argument("-c", "--config", default="config.yml", help="Config YAML file (default: config.yml)")
    parser.add_argument("--cache", default=".math-cache", help="SVG cache directory (default: .math-cache)")
    args = parser.parse_args(argv)

    try:
        cfg = load_config_or_default(Path(args.config))
    except Exception as e:
        print(f"[tex_to_html] Failed to load config: {e}", file=sys.stderr)
        return 2

    try:
        input_path = safe_input_path(args.input)
    except Exception as e:
        print(f"[tex_to_html] Invalid input path: {e}", file=sys.stderr)
        return 2

    typesetter = LatexSvgTypesetter(Path(args.cache), preamble_macros=cfg.math_macros)
    try:
        _, body = read_tex_source(input_path)
        document = render_tex_to_html_document(body, typesetter, cfg, title=input_path.name)
        Path(args.output).write_text(document, encoding="utf-8")
    except OSError as e:
        print(f"[tex_to_html] Error while rendering: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
