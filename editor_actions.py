"""
Text-producing editor actions: auto-indent on Enter, environment snippets,
toolbar items, table skeletons and preamble maintenance.

All functions work on plain strings and absolute offsets; the browser
applies the returned text and cursor.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence
import logging

from completion_catalog import DEFAULT_PACKAGES
from config_loader import PreviewConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)

LIST_ENVIRONMENTS = frozenset({"itemize", "enumerate"})

# Extra text placed right after \begin{env}
ENVIRONMENT_EXTRAS = {"tikzpicture": "[scale=1]"}

SAMPLE_BODY = r"""\begin{align*}
  f(x) &= x^2 + 2x + 1 \\
       &= (x+1)^2
\end{align*}

A table example with a caption:
\begin{table}[h!]
  \centering
  \begin{tabular}{|l|c|r|}
    \hline
    Left & Center & Right \\
    \hline
    1 & $x^2$ & 3 \\
    4 & 5 & $\alpha + \beta$ \\
    \hline
  \end{tabular}
  \caption{A table with a caption and math, like $\sqrt{y}$.}
  \label{tab:example}
\end{table}

And some inline math: $\sqrt{b^2 - 4ac}$.\\
This text appears on a new line."""


@dataclass(frozen=True)
class EditResult:
    text: str
    cursor: int


def line_bounds(text: str, offset: int) -> tuple[int, int]:
    """(start, end) of the line containing `offset`; end excludes the newline."""
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    if end == -1:
        end = len(text)
    return start, end


def _leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def handle_enter(text: str, offset: int, cfg: PreviewConfig = DEFAULT_CONFIG) -> Optional[EditResult]:
    """
    Auto-close an environment when Enter is pressed after \\begin{env}.

    Only fires with the cursor at the very end of the line. Returns None
    when the default line break should happen instead.
    """
    start, end = line_bounds(text, offset)
    if offset != end:
        return None

    line = text[start:end]
    m = cfg.begin_env_re.search(line)
    if not m:
        return None

    env = m.group(1)
    indent = _leading_whitespace(line)
    deeper = indent + cfg.indent_unit
    insert = f"\n{deeper}\n{indent}\\end{{{env}}}"
    logger.debug("auto-closing environment %s at offset %d", env, offset)
    return EditResult(
        text=text[:offset] + insert + text[offset:],
        cursor=offset + 1 + len(deeper),
    )


def insert_environment(text: str, offset: int, env: str) -> EditResult:
    """
    Insert a \\begin{env}...\\end{env} snippet at `offset`.

    List environments get a first \\item; the cursor lands on the inner line.
    """
    is_list = env in LIST_ENVIRONMENTS
    extra = ENVIRONMENT_EXTRAS.get(env, "")
    inner = "  \\item " if is_list else "  "
    snippet = f"\\begin{{{env}}}{extra}\n{inner}\n\\end{{{env}}}"
    first_line_end = offset + snippet.index("\n")
    return EditResult(
        text=text[:offset] + snippet + text[offset:],
        cursor=first_line_end + 1 + len(inner),
    )


def generate_table_latex(rows: int, cols: int) -> str:
    """Skeleton table environment with `rows` x `cols` empty centred cells."""
    num_rows = max(1, rows)
    num_cols = max(1, cols)

    column_format = "c" * num_cols
    row_cells = " & ".join([" "] * num_cols)
    table_body = " \\\\\n        ".join([row_cells] * num_rows)

    return (
        "\\begin{table}[h!]\n"
        "    \\centering\n"
        f"    \\begin{{tabular}}{{{column_format}}}\n"
        f"        {table_body}\n"
        "    \\end{tabular}\n"
        "    \\caption{Caption}\n"
        "    \\label{tab:my_label}\n"
        "\\end{table}"
    )


def add_package(preamble: str, package: str) -> str:
    """
    Add \\usepackage{package} after the last \\usepackage line, or after
    \\documentclass when there is none. Already present -> unchanged.
    """
    usage = f"\\usepackage{{{package}}}"
    if usage in preamble:
        return preamble

    lines = preamble.split("\n")
    insert_index = next(
        (i for i, line in enumerate(lines) if line.startswith("\\documentclass")), -1
    )
    for i, line in enumerate(lines):
        if line.startswith("\\usepackage"):
            insert_index = i

    lines.insert(insert_index + 1, usage)
    return "\n".join(lines)


def generate_initial_preamble(packages: Sequence[str] = DEFAULT_PACKAGES) -> str:
    parts = ["\\documentclass{article}\n"]
    parts.extend(f"\\usepackage{{{pkg}}}\n" for pkg in packages)
    if "geometry" in packages:
        parts.append("\\geometry{a4paper, margin=1in}\n")
    return "".join(parts)


# ---------- toolbar ----------

@dataclass(frozen=True)
class ToolbarItem:
    """
    One toolbar entry.

    kind: "wrapper" (code + selection + closing), "snippet" (code with a
    placeholder to select), "env" (environment skeleton) or "insert".
    """
    display: str
    kind: str
    code: str
    closing: str = ""
    placeholder: str = ""
    multiline: bool = False


@dataclass(frozen=True)
class ToolbarResult:
    text: str
    sel_start: int
    sel_end: int
    reopen: bool = False
    packages: tuple[str, ...] = ()


def _wrapper(display: str, code: str, closing: str, multiline: bool = False) -> ToolbarItem:
    return ToolbarItem(display, "wrapper", code, closing=closing, multiline=multiline)


def _snippet(display: str, code: str, placeholder: str) -> ToolbarItem:
    return ToolbarItem(display, "snippet", code, placeholder=placeholder)


def _env(display: str, name: str) -> ToolbarItem:
    return ToolbarItem(display, "env", name)


def _insert(display: str, code: str) -> ToolbarItem:
    return ToolbarItem(display, "insert", code)


TOOLBAR_GROUPS: tuple[tuple[str, tuple[ToolbarItem, ...]], ...] = (
    ("Math", (
        _wrapper("$...$ - Inline", "$", "$"),
        _wrapper("\\(...\\) - Inline", "\\(", "\\)"),
        _wrapper("$$...$$ - Display", "$$\n  ", "\n$$", multiline=True),
        _wrapper("\\[...\\] - Display", "\\[\n  ", "\n\\]", multiline=True),
        _snippet("a/b", "\\frac{}{}", "{}"),
        _snippet("\u221a", "\\sqrt{}", "{}"),
        _snippet("\\vec", "\\vec{}", "{}"),
        _wrapper("x\u2082", "_{", "}"),
        _wrapper("x\u00b2", "^{", "}"),
        _wrapper("()", "\\left( ", " \\right)"),
        _env("align", "align"),
        _env("align*", "align*"),
        _env("equation", "equation"),
        _env("pmatrix", "pmatrix"),
        _env("cases", "cases"),
    )),
    ("Text", (
        _wrapper("Bold", "\\textbf{", "}"),
        _wrapper("Italic", "\\textit{", "}"),
        _wrapper("Underline", "\\underline{", "}"),
        _wrapper("Strike", "\\sout{", "}"),
        _snippet("Color", "\\textcolor{color}{text}", "color"),
        _wrapper("Section", "\\section{", "}"),
        _wrapper("Subsection", "\\subsection{", "}"),
        _env("bulletpoint", "itemize"),
        _env("numberlist", "enumerate"),
    )),
    ("References", (
        _snippet("Link (href)", "\\href{url}{text}", "url"),
        _snippet("Reference (ref)", "\\ref{label}", "label"),
        _snippet("Citation (cite)", "\\cite{key}", "key"),
    )),
    ("Tables & Arrays", (
        _env("array", "array"),
        _insert("hline", "\\hline"),
    )),
    ("Diagrams (TikZ)", (
        _env("tikzpicture", "tikzpicture"),
        _wrapper("Fill Shape", "\\fill[", "] (0,0) rectangle (2,1);"),
        _wrapper("Draw Shape", "\\draw[", "] (0,0) -- (2,1);"),
        _snippet("Text Node", "\\node at (x,y) {text};", "(x,y)"),
        _insert("Circle", "\\draw (0,0) circle (1cm);"),
        _insert("Rectangle", "\\draw (0,0) rectangle (2,1);"),
    )),
)

# wrappers whose empty insertion leaves the cursor inside a styling group
REOPEN_WRAPPERS = frozenset({"\\fill[", "\\draw["})


def find_toolbar_item(group: str, index: int) -> ToolbarItem:
    """Raises KeyError for an unknown group, IndexError for a bad index."""
    for name, items in TOOLBAR_GROUPS:
        if name == group:
            if not 0 <= index < len(items):
                raise IndexError(f"{group} has no item {index}")
            return items[index]
    raise KeyError(group)


def required_packages(item: ToolbarItem) -> tuple[str, ...]:
    """Packages the preamble needs once `item` is used."""
    needed = []
    if item.code == "\\sout{":
        needed.append("ulem")
    if "\\href" in item.code:
        needed.append("hyperref")
    return tuple(needed)


def toolbar_action(text: str, sel_start: int, sel_end: int, item: ToolbarItem) -> ToolbarResult:
    """
    Apply a toolbar item to the selection [sel_start, sel_end).

    The returned selection is where the editor should put its cursor
    (equal ends) or highlight (a snippet's placeholder).
    """
    start, end = sorted((max(0, min(sel_start, len(text))), max(0, min(sel_end, len(text)))))
    selected = text[start:end]
    packages = required_packages(item)

    def replaced(inserted: str) -> str:
        return text[:start] + inserted + text[end:]

    if item.kind == "wrapper":
        if item.multiline and not selected:
            cursor = start + len(item.code)
            return ToolbarResult(replaced(item.code + item.closing), cursor, cursor, packages=packages)
        inserted = item.code + selected + item.closing
        if selected:
            cursor = start + len(inserted)
            return ToolbarResult(replaced(inserted), cursor, cursor, packages=packages)
        cursor = start + len(item.code)
        return ToolbarResult(
            replaced(inserted), cursor, cursor,
            reopen=item.code in REOPEN_WRAPPERS,
            packages=packages,
        )

    if item.kind == "snippet":
        at = item.code.find(item.placeholder) if item.placeholder else -1
        if at == -1:
            cursor = start + len(item.code)
            return ToolbarResult(replaced(item.code), cursor, cursor, packages=packages)
        return ToolbarResult(
            replaced(item.code),
            start + at,
            start + at + len(item.placeholder),
            packages=packages,
        )

    if item.kind == "env":
        result = insert_environment(text, start, item.code)
        return ToolbarResult(result.text, result.cursor, result.cursor, packages=packages)

    if item.kind == "insert":
        cursor = start + len(item.code)
        return ToolbarResult(replaced(item.code), cursor, cursor, packages=packages)

    raise ValueError(f"unknown toolbar item kind: {item.kind!r}")
