#!/usr/bin/env python3
"""
tex_tables.py

tabular -> grid model -> preview nodes, and the table environment wrapper
(tabular + optional caption + optional label).

Supported (minimal):

  \\begin{tabular}{|l|c|r|}
    \\hline
    a & b & $x^2$ \\\\
    \\hline
  \\end{tabular}

Column format letters l/c/r give the alignment, '|' gives borders. Anything
else in the format string (p{..}, @{..}, ...) is ignored. Rows are split on
'\\\\', cells on '&'. A leading \\hline draws a top border on the next row,
a trailing one a bottom border on the current row.

All offsets in the model are relative to `base` (0 by default), so cells
and captions can be mapped back to the source.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional
import logging
import re

from config_loader import PreviewConfig, DEFAULT_CONFIG
from math_renderer import Typesetter
from preview_nodes import RenderedNode, element, text_node
from tex_inline import RenderReport, render_inline_content
from tex_scanner import SourceSpan

logger = logging.getLogger(__name__)

ALIGN_BY_LETTER: dict[str, str] = {"l": "left", "c": "center", "r": "right"}


@dataclass(frozen=True)
class ColumnSpec:
    align: str = "center"
    left_border: bool = False
    right_border: bool = False


# Used for cells beyond the declared columns
FALLBACK_COLUMN = ColumnSpec()


@dataclass
class Cell:
    text: str
    span: SourceSpan
    has_top_border: bool = False
    has_bottom_border: bool = False


@dataclass
class Row:
    cells: list[Cell] = field(default_factory=list)
    has_top_border: bool = False
    has_bottom_border: bool = False

    def set_bottom_border(self) -> None:
        self.has_bottom_border = True
        for cell in self.cells:
            cell.has_bottom_border = True


@dataclass
class TableModel:
    columns: list[ColumnSpec]
    rows: list[Row]

    def column_for(self, index: int) -> ColumnSpec:
        if 0 <= index < len(self.columns):
            return self.columns[index]
        return FALLBACK_COLUMN


def parse_column_format(col_format: str) -> list[ColumnSpec]:
    """
    Parse a column format string like '|l|c|r|'.

    A '|' before the first column marks the left border of the column that
    follows; any later '|' marks the right border of the last column.
    """
    columns: list[ColumnSpec] = []
    next_has_left_border = False
    for ch in col_format:
        if ch in ALIGN_BY_LETTER:
            columns.append(ColumnSpec(align=ALIGN_BY_LETTER[ch], left_border=next_has_left_border))
            next_has_left_border = False
        elif ch == "|":
            if columns:
                columns[-1] = replace(columns[-1], right_border=True)
            else:
                next_has_left_border = True
    return columns


def _strip_with_offset(text: str, start: int) -> tuple[str, int]:
    """strip() that also reports where the stripped text starts."""
    lead = len(text) - len(text.lstrip())
    return text.strip(), start + lead


def _split_with_offsets(text: str, sep: str, start: int) -> list[tuple[str, int]]:
    out: list[tuple[str, int]] = []
    pos = 0
    while True:
        idx = text.find(sep, pos)
        if idx == -1:
            out.append((text[pos:], start + pos))
            return out
        out.append((text[pos:idx], start + pos))
        pos = idx + len(sep)


def build_table_model(
    latex: str,
    cfg: PreviewConfig = DEFAULT_CONFIG,
    *,
    base: int = 0,
) -> Optional[TableModel]:
    """
    Parse a tabular block into a TableModel.

    Returns None when `latex` has no \\begin{tabular}{..} ... \\end{tabular} pair.
    """
    match = cfg.tabular_re.search(latex)
    if not match:
        return None

    columns = parse_column_format(match.group(1))
    content, content_start = _strip_with_offset(match.group(2), base + match.start(2))

    hline = cfg.hline_marker
    trailing_hline_re = re.compile(re.escape(hline) + r"\s*$")

    rows: list[Row] = []
    pending_top_border = False

    for raw_row, raw_start in _split_with_offsets(content, "\\\\", content_start):
        row_text, row_start = _strip_with_offset(raw_row, raw_start)

        if row_text.startswith(hline):
            pending_top_border = True
            row_text, row_start = _strip_with_offset(row_text[len(hline):], row_start + len(hline))

        if not row_text:
            continue

        has_bottom_border = False
        m = trailing_hline_re.search(row_text)
        if m:
            has_bottom_border = True
            row_text = row_text[: m.start()].rstrip()

        row = Row(has_top_border=pending_top_border, has_bottom_border=has_bottom_border)
        pending_top_border = False

        for raw_cell, cell_start in _split_with_offsets(row_text, "&", row_start):
            cell_text, cell_start = _strip_with_offset(raw_cell, cell_start)
            row.cells.append(
                Cell(
                    text=cell_text,
                    span=SourceSpan(cell_start, cell_start + len(cell_text)),
                    has_top_border=row.has_top_border,
                    has_bottom_border=has_bottom_border,
                )
            )
        rows.append(row)

    # A trailing \hline with nothing after it closes the last row
    if pending_top_border and rows:
        rows[-1].set_bottom_border()

    return TableModel(columns=columns, rows=rows)


def render_tabular(
    latex: str,
    typesetter: Typesetter,
    report: RenderReport,
    cfg: PreviewConfig = DEFAULT_CONFIG,
    *,
    base: Optional[int] = None,
) -> RenderedNode:
    """
    Render a tabular block to a div.rendered-table-container.

    Input that does not match the begin/end pair is returned as one opaque
    text node inside the container.
    """
    model = build_table_model(latex, cfg, base=base or 0)
    if model is None:
        logger.debug("tabular fallback: no begin/end pair")
        return element("div", [text_node(latex)], classes=["rendered-table-container"])

    tbody = element("tbody")
    for row in model.rows:
        row_classes: list[str] = []
        if row.has_top_border:
            row_classes.append("has-top-border")
        if row.has_bottom_border:
            row_classes.append("has-bottom-border")

        tr = tbody.append(element("tr", classes=row_classes))
        for index, cell in enumerate(row.cells):
            col = model.column_for(index)
            cell_classes: list[str] = []
            if col.left_border:
                cell_classes.append("has-left-border")
            if col.right_border:
                cell_classes.append("has-right-border")

            td = tr.append(
                element("td", classes=cell_classes, attrs={"style": f"text-align: {col.align}"})
            )
            td.extend(
                render_inline_content(
                    cell.text,
                    typesetter,
                    report,
                    base=cell.span.start if base is not None else None,
                )
            )

    table = element("table", [tbody], classes=["rendered-table"])
    return element("div", [table], classes=["rendered-table-container"])


# ---------------- table environment ------------------------------------------


def read_brace_argument(text: str, open_index: int) -> Optional[tuple[str, int]]:
    """
    Read a balanced {...} argument whose '{' sits at open_index.

    Escaped braces (\\{ and \\}) do not count. Returns (content, end) with
    end just past the closing brace, or None if the braces never balance.
    """
    if open_index >= len(text) or text[open_index] != "{":
        return None
    depth = 0
    i = open_index
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[open_index + 1 : i], i + 1
        i += 1
    return None


def find_command_argument(text: str, command: str) -> Optional[tuple[str, int, int]]:
    """
    Find the first `\\command{...}` in text.

    Returns (argument, start of the command, end past the closing brace).
    """
    marker = "\\" + command + "{"
    start = text.find(marker)
    while start != -1:
        arg = read_brace_argument(text, start + len(marker) - 1)
        if arg is not None:
            return arg[0], start, arg[1]
        start = text.find(marker, start + 1)
    return None


def find_tabular_block(text: str) -> Optional[tuple[int, int]]:
    """Locate the first \\begin{tabular}{..} ... \\end{tabular} block: (start, end)."""
    opener = "\\begin{tabular}"
    closer = "\\end{tabular}"
    start = text.find(opener)
    while start != -1:
        fmt_open = start + len(opener)
        if text.startswith("{", fmt_open):
            end = text.find(closer, fmt_open)
            if end == -1:
                return None
            return start, end + len(closer)
        start = text.find(opener, start + 1)
    return None


def render_table_environment(
    latex: str,
    typesetter: Typesetter,
    report: RenderReport,
    cfg: PreviewConfig = DEFAULT_CONFIG,
    *,
    base: Optional[int] = None,
) -> RenderedNode:
    """
    Render a table environment to a figure.rendered-table-figure.

    Tabular, caption and label are each optional and searched independently.
    The label is shown as an inert note; it is never resolved.
    """
    figure = element("figure", classes=["rendered-table-figure"])

    def abs_span(start: int, end: int) -> Optional[SourceSpan]:
        if base is None:
            return None
        return SourceSpan(base + start, base + end)

    tabular = find_tabular_block(latex)
    if tabular is not None:
        t_start, t_end = tabular
        figure.append(
            render_tabular(
                latex[t_start:t_end],
                typesetter,
                report,
                cfg,
                base=None if base is None else base + t_start,
            )
        )

    caption = find_command_argument(latex, "caption")
    if caption is not None:
        arg, c_start, c_end = caption
        text, text_start = _strip_with_offset(arg, c_start + len("\\caption{"))
        figcaption = figure.append(
            element("figcaption", classes=["rendered-table-caption"], span=abs_span(c_start, c_end))
        )
        figcaption.append(text_node(cfg.caption_prefix))
        figcaption.extend(
            render_inline_content(
                text,
                typesetter,
                report,
                base=None if base is None else base + text_start,
            )
        )

    label = find_command_argument(latex, "label")
    if label is not None:
        arg, l_start, l_end = label
        figure.append(
            element(
                "div",
                [text_node(cfg.label_template.format(label=arg.strip()))],
                classes=["rendered-table-label-note"],
                span=abs_span(l_start, l_end),
            )
        )

    if tabular is None and caption is None and label is None:
        figure.append(text_node(latex))

    return figure
