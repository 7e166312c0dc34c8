# math_renderer.py
from __future__ import annotations

from pathlib import Path
from typing import Protocol
import hashlib
import html
import logging
import subprocess
import tempfile

logger = logging.getLogger(__name__)

_MESSAGE_PREFIXES = ("KaTeX parse error: ", "! LaTeX Error: ", "! ")


class MathRenderError(RuntimeError):
    """Raised by a typesetter when a math snippet cannot be rendered."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Typesetter(Protocol):
    def render(self, math_source: str, display_mode: bool) -> str:
        """Return markup for `math_source`; raise MathRenderError on invalid input."""
        ...


def clean_error_message(message: str) -> str:
    """Strip engine noise like 'KaTeX parse error: ' or '! ' from an error message."""
    msg = (message or "").strip()
    for prefix in _MESSAGE_PREFIXES:
        if msg.startswith(prefix):
            return msg[len(prefix):].strip()
    return msg


def _first_error_line(log_text: str) -> str:
    """Pick the first TeX error line ('! ...') out of latex output."""
    for line in log_text.splitlines():
        if line.startswith("!"):
            return line
    return "LaTeX failed without an error message"


def build_standalone_document(
    math_src: str,
    *,
    display_mode: bool,
    preamble_macros: str = "",
) -> str:
    """
    Wrap a math snippet in a minimal standalone LaTeX document.

    Display environments (\\begin{align*} ...) are placed as-is; other display
    snippets are wrapped in \\[ \\], inline snippets in $ $.
    """
    macros = (preamble_macros or "").strip()
    parts = [
        r"\documentclass[preview]{standalone}",
        r"\usepackage{amsmath}",
        r"\usepackage{amssymb}",
    ]
    # Inject macro definitions into the preamble (recommended place).
    if macros:
        parts.append("% --- texpreview macros ---")
        parts.append(macros)
        parts.append("% --- end macros ---")
    parts.append(r"\begin{document}")
    stripped = math_src.strip()
    if display_mode and stripped.startswith("\\begin{"):
        parts.append(stripped)
    elif display_mode:
        parts.append("\\[" + math_src + "\\]")
    else:
        parts.append("$" + math_src + "$")
    parts.append(r"\end{document}")
    return "\n".join(parts) + "\n"


def render_math_to_svg(
    math_src: str,
    out_path: Path,
    *,
    display_mode: bool = False,
    preamble_macros: str = "",
) -> None:
    """
    Render math to an SVG using LaTeX + dvisvgm.

    - math_src: raw LaTeX snippet, e.g. r"\\sum^{n}_{i=1} i"
    - out_path: final SVG path, e.g. cache_dir / "<digest>.svg"
    - preamble_macros: LaTeX macro definitions to inject before \\begin{document}

    Requires `latex` and `dvisvgm` in PATH. Raises MathRenderError with the
    first TeX error line when compilation fails.
    """
    out_path = out_path.resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(prefix="texpreview-") as tmp:
        workdir = Path(tmp)
        tex_path = workdir / "snippet.tex"
        tex_path.write_text(
            build_standalone_document(
                math_src, display_mode=display_mode, preamble_macros=preamble_macros
            ),
            encoding="utf-8",
        )

        # 1) latex -> dvi
        try:
            result = subprocess.run(
                ["latex", "-interaction=nonstopmode", "-halt-on-error", tex_path.name],
                cwd=workdir,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise MathRenderError("latex executable not found in PATH") from e
        if result.returncode != 0:
            raise MathRenderError(clean_error_message(_first_error_line(result.stdout)))

        dvi_path = tex_path.with_suffix(".dvi")

        # 2) dvi -> svg, written *directly* to out_path
        try:
            subprocess.run(
                ["dvisvgm", "-n", "-a", "-o", str(out_path), str(dvi_path)],
                capture_output=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise MathRenderError("dvisvgm executable not found in PATH") from e
        except subprocess.CalledProcessError as e:
            raise MathRenderError(f"dvisvgm failed with exit code {e.returncode}") from e


def math_digest(math_src: str, *, display_mode: bool, preamble_macros: str = "") -> str:
    """
    Cache key for one snippet.

    We hash the macro preamble, the mode AND the snippet, so a change in any
    of them produces a different SVG.
    """
    macros = (preamble_macros or "").strip()
    mode = "display" if display_mode else "inline"
    payload = f"{macros}\n%%MODE {mode}%%\n{math_src or ''}"
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


class LatexSvgTypesetter:
    """
    Default typesetting collaborator: LaTeX + dvisvgm with an on-disk SVG cache.

    render() returns an <img> tag pointing at `url_prefix + <digest>.svg`.
    """

    def __init__(self, cache_dir: Path, *, preamble_macros: str = "", url_prefix: str = "/math/"):
        self.cache_dir = Path(cache_dir)
        self.preamble_macros = preamble_macros
        self.url_prefix = url_prefix

    def svg_path(self, digest: str) -> Path:
        return self.cache_dir / f"{digest}.svg"

    def render(self, math_source: str, display_mode: bool) -> str:
        digest = math_digest(
            math_source, display_mode=display_mode, preamble_macros=self.preamble_macros
        )
        svg_path = self.svg_path(digest)
        if not svg_path.exists():
            logger.debug("rendering math %s (display=%s)", digest, display_mode)
            render_math_to_svg(
                math_source,
                svg_path,
                display_mode=display_mode,
                preamble_macros=self.preamble_macros,
            )

        css_class = "math-display" if display_mode else "math-inline"
        alt = math_source.strip() or "math"
        return (
            f'<img src="{html.escape(self.url_prefix + digest + ".svg", quote=True)}" '
            f'alt="{html.escape(alt, quote=True)}" '
            f'class="{css_class}" />'
        )
