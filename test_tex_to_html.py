# test_tex_to_html.py
#
# Run:
#   python -m unittest -v

import tempfile
import unittest
from pathlib import Path
from unittest import mock

import tex_to_html as m
from editor_actions import SAMPLE_BODY
from math_renderer import MathRenderError
from tex_scanner import SegmentKind, SourceSpan


class FakeTypesetter:
    def render(self, math_source, display_mode):
        if "\\bad" in math_source:
            raise MathRenderError("KaTeX parse error: Undefined control sequence: \\bad")
        if "\\boom" in math_source:
            raise RuntimeError("typesetter crashed")
        return f"<m>{math_source}</m>"


class TestRenderPreview(unittest.TestCase):
    def setUp(self) -> None:
        self.ts = FakeTypesetter()

    def test_sample_document_renders_every_kind(self):
        result = m.render_preview(SAMPLE_BODY, self.ts)
        kinds = {s.kind for s in result.segments}
        self.assertEqual(
            kinds,
            {SegmentKind.DISPLAY_MATH, SegmentKind.TEXT, SegmentKind.TABLE_ENV, SegmentKind.INLINE_MATH},
        )
        self.assertIsNone(result.error_banner)
        out = result.html
        self.assertTrue(out.startswith('<div id="preview-content">'))
        self.assertIn('class="rendered-table-figure"', out)
        self.assertIn("Table: ", out)
        self.assertIn("(Label: tab:example)", out)
        self.assertIn("<br />", out)

    def test_fragments_are_tagged_with_segment_spans(self):
        src = "x \\begin{tabular}{c}a\\end{tabular} $y$"
        result = m.render_preview(src, self.ts)
        tagged = result.position_map.tagged_spans()
        for seg in result.segments:
            self.assertIn(seg.span, tagged)

    def test_lookup_from_cell_resolves_to_enclosing_fragment(self):
        src = "\\begin{tabular}{c}plain\\end{tabular}"
        result = m.render_preview(src, self.ts)
        cell_text = next(n for n in result.root.iter_preorder() if n.text == "plain")
        node_id = result.position_map.node_id(cell_text)
        self.assertEqual(result.lookup(node_id), SourceSpan(0, len(src)))

    def test_first_math_error_becomes_banner(self):
        result = m.render_preview("$\\bad$ and $\\bad$ and $ok$", self.ts)
        self.assertEqual(result.error_banner, "Undefined control sequence: \\bad")
        self.assertEqual(len(result.report.errors), 2)
        self.assertEqual(result.html.count('class="math-error-inline"'), 2)
        self.assertIn("<m>ok</m>", result.html)

    def test_unexpected_failure_is_isolated_to_its_fragment(self):
        src = "\\begin{tabular}{c} a \\end{tabular} then $fine$"
        with mock.patch.object(m, "render_tabular", side_effect=KeyError("cells")):
            with self.assertLogs("tex_to_html", level="ERROR"):
                result = m.render_preview(src, self.ts)
        self.assertIn('class="render-error"', result.html)
        self.assertIn("<m>fine</m>", result.html)
        self.assertTrue(result.error_banner.startswith("Failed to render tabular"))

    def test_typesetter_crash_is_an_inline_error(self):
        with self.assertLogs("tex_inline", level="ERROR"):
            result = m.render_preview("$\\boom$ then $fine$", self.ts)
        self.assertNotIn('class="render-error"', result.html)
        self.assertIn('class="math-error-inline"', result.html)
        self.assertIn("<m>fine</m>", result.html)
        self.assertEqual(result.error_banner, "typesetter crashed")

    def test_typesetter_crash_in_one_cell_keeps_sibling_cells(self):
        src = "\\begin{tabular}{cc} $x$ & $\\boom$ \\\\ \\end{tabular}"
        with self.assertLogs("tex_inline", level="ERROR"):
            result = m.render_preview(src, self.ts)
        self.assertNotIn('class="render-error"', result.html)
        self.assertIn("<m>x</m>", result.html)
        self.assertEqual(result.html.count('class="math-error-inline"'), 1)
        self.assertEqual(result.error_banner, "typesetter crashed")

    def test_line_breaks_in_text(self):
        result = m.render_preview("one\\\\two", self.ts)
        self.assertEqual(result.root.plain_text(), "one\ntwo")

    def test_render_is_repeatable(self):
        first = m.render_preview(SAMPLE_BODY, self.ts)
        second = m.render_preview(SAMPLE_BODY, self.ts)
        self.assertEqual(first.segments, second.segments)
        self.assertEqual(first.html, second.html)


class TestHtmlDocument(unittest.TestCase):
    def test_document_has_banner_and_preview(self):
        out = m.render_tex_to_html_document("$\\bad$", FakeTypesetter(), title="t<1>")
        self.assertTrue(out.startswith("<!doctype html>"))
        self.assertIn("<title>t&lt;1&gt;</title>", out)
        self.assertIn('<div id="preview-error" role="alert">', out)
        self.assertTrue(out.endswith("</html>\n"))

    def test_no_banner_without_errors(self):
        self.assertEqual(m.render_error_banner(None), "")


class TestMain(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_writes_output_file(self):
        src = self.root / "doc.tex"
        src.write_text(
            "\\documentclass{article}\n\\begin{document}\nHello\\\\world\n\\end{document}\n",
            encoding="utf-8",
        )
        out = self.root / "out.html"
        code = m.main([
            str(src),
            "-o", str(out),
            "-c", str(self.root / "missing.yml"),
            "--cache", str(self.root / "cache"),
        ])
        self.assertEqual(code, 0)
        text = out.read_text(encoding="utf-8")
        self.assertIn("Hello", text)
        self.assertNotIn("documentclass", text)

    def test_missing_input_returns_2(self):
        code = m.main([str(self.root / "nope.tex"), "-c", str(self.root / "missing.yml")])
        self.assertEqual(code, 2)


if __name__ == "__main__":
    unittest.main()
