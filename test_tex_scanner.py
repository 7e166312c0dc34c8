# test_tex_scanner.py
#
# Run:
#   python -m unittest -v

import copy
import random
import unittest

from config_loader import DEFAULT_CONFIG
from tex_scanner import (
    SegmentKind,
    SourceSpan,
    match_fragment_at,
    scan_fragments,
    split_line_breaks,
)

SAMPLES = [
    "",
    "plain text only",
    "$\\alpha$",
    "a $x$ b $$y$$ c \\[z\\] d \\(w\\) e",
    "\\begin{align*}\n  f &= x \\\\\n  &= y\n\\end{align*}\nafter",
    "\\begin{table}\\begin{tabular}{c}$x$\\end{tabular}\\caption{C}\\end{table}",
    "\\begin{tabular}{|l|c|r|}\\hline A & B & C \\\\ \\hline\\end{tabular}",
    "unterminated $x and \\begin{tabular}{c} a & b",
    "$a\\$b$ and \\(c\\)",
    "line one\\\\line two\\\\",
]

# single characters plus whole openers and closers, so partial and nested
# constructs show up in generated sources
PIECES = [
    "$", "\\", "{", "}", "[", "]", "(", ")", "&", "|", "a", " ", "\n",
    "$$", "\\(", "\\)", "\\[", "\\]", "\\\\", "\\$", "\\hline",
    "\\begin{tabular}{|c|c|}", "\\end{tabular}",
    "\\begin{table}", "\\end{table}", "\\caption{", "\\label{",
    "\\begin{align*}", "\\end{align*}", "\\begin{itemize}", "\\end{itemize}",
]


def generated_sources(count=300, seed=1234):
    rng = random.Random(seed)
    for _ in range(count):
        yield "".join(rng.choice(PIECES) for _ in range(rng.randint(0, 25)))


class TestScanFragments(unittest.TestCase):
    def kinds(self, source, cfg=DEFAULT_CONFIG):
        return [s.kind for s in scan_fragments(source, cfg)]

    # ---------- scenarios ----------
    def test_inline_math_at_document_start(self):
        segs = scan_fragments("$\\alpha$")
        self.assertEqual(len(segs), 1)
        self.assertIs(segs[0].kind, SegmentKind.INLINE_MATH)
        self.assertEqual(segs[0].span, SourceSpan(0, 8))
        self.assertFalse(segs[0].display_mode)
        self.assertEqual(segs[0].math_source, "\\alpha")

    def test_table_env_wins_over_nested_tabular_and_math(self):
        src = SAMPLES[5]
        segs = scan_fragments(src)
        self.assertEqual([s.kind for s in segs], [SegmentKind.TABLE_ENV])
        self.assertEqual(segs[0].span, SourceSpan(0, len(src)))

    def test_earliest_position_wins(self):
        src = "$x$ then \\begin{tabular}{c}a\\end{tabular}"
        self.assertEqual(
            self.kinds(src),
            [SegmentKind.INLINE_MATH, SegmentKind.TEXT, SegmentKind.TABULAR],
        )

    # ---------- coverage / idempotence ----------
    def test_segments_reconstruct_source(self):
        for src in SAMPLES:
            with self.subTest(src=src):
                segs = scan_fragments(src)
                self.assertEqual("".join(s.raw for s in segs), src)

    def test_segments_are_contiguous_and_match_raw(self):
        for src in SAMPLES:
            with self.subTest(src=src):
                pos = 0
                for seg in scan_fragments(src):
                    self.assertEqual(seg.span.start, pos)
                    self.assertEqual(src[seg.span.start:seg.span.end], seg.raw)
                    pos = seg.span.end
                self.assertEqual(pos, len(src))

    def test_scanning_twice_gives_identical_segments(self):
        for src in SAMPLES:
            with self.subTest(src=src):
                self.assertEqual(scan_fragments(src), scan_fragments(src))

    def test_generated_sources_are_covered_exactly(self):
        for src in generated_sources():
            with self.subTest(src=src):
                segs = scan_fragments(src)
                self.assertEqual("".join(s.raw for s in segs), src)
                pos = 0
                for prev, seg in zip([None] + segs, segs):
                    self.assertEqual(seg.span.start, pos)
                    self.assertLess(seg.span.start, seg.span.end)
                    self.assertEqual(src[seg.span.start:seg.span.end], seg.raw)
                    if prev is not None and prev.kind is SegmentKind.TEXT:
                        self.assertIsNot(seg.kind, SegmentKind.TEXT)
                    pos = seg.span.end
                self.assertEqual(pos, len(src))
                self.assertEqual(scan_fragments(src), segs)

    def test_empty_source_has_no_segments(self):
        self.assertEqual(scan_fragments(""), [])

    # ---------- display math ----------
    def test_display_forms(self):
        for src, inner in [("$$x+1$$", "x+1"), ("\\[x+1\\]", "x+1")]:
            with self.subTest(src=src):
                (seg,) = scan_fragments(src)
                self.assertIs(seg.kind, SegmentKind.DISPLAY_MATH)
                self.assertTrue(seg.display_mode)
                self.assertEqual(seg.math_source, inner)

    def test_whitelisted_environment_is_display_math_passed_whole(self):
        src = "\\begin{pmatrix}a & b\\end{pmatrix}"
        (seg,) = scan_fragments(src)
        self.assertIs(seg.kind, SegmentKind.DISPLAY_MATH)
        self.assertEqual(seg.math_source, src)

    def test_other_environments_stay_text(self):
        src = "\\begin{itemize}\\item $x$\\end{itemize}"
        self.assertEqual(
            self.kinds(src),
            [SegmentKind.TEXT, SegmentKind.INLINE_MATH, SegmentKind.TEXT],
        )

    def test_display_environments_come_from_config(self):
        cfg = copy.copy(DEFAULT_CONFIG)
        cfg.display_environments = frozenset({"equation"})
        self.assertEqual(self.kinds("\\begin{align}x\\end{align}", cfg), [SegmentKind.TEXT])
        self.assertEqual(
            self.kinds("\\begin{equation}x\\end{equation}", cfg), [SegmentKind.DISPLAY_MATH]
        )

    # ---------- inline math ----------
    def test_paren_inline_math(self):
        (seg,) = scan_fragments("\\(a+b\\)")
        self.assertIs(seg.kind, SegmentKind.INLINE_MATH)
        self.assertEqual(seg.math_source, "a+b")

    def test_escaped_dollar_does_not_close_inline_math(self):
        segs = scan_fragments("$a\\$b$ rest")
        self.assertIs(segs[0].kind, SegmentKind.INLINE_MATH)
        self.assertEqual(segs[0].raw, "$a\\$b$")

    def test_unterminated_constructs_become_text(self):
        for src in ["$x", "\\(x", "\\begin{table} no end", "\\begin{tabular}{c} A & B"]:
            with self.subTest(src=src):
                self.assertEqual(self.kinds(src), [SegmentKind.TEXT])

    def test_match_fragment_at_reports_rule_name(self):
        src = "\\begin{tabular}{c}a\\end{tabular}"
        self.assertEqual(match_fragment_at(src, 0), ("tabular", SegmentKind.TABULAR, len(src)))
        self.assertIsNone(match_fragment_at("abc", 0))


class TestSourceSpan(unittest.TestCase):
    def test_rejects_inverted_span(self):
        with self.assertRaises(ValueError):
            SourceSpan(5, 2)

    def test_shifted_and_as_dict(self):
        self.assertEqual(SourceSpan(1, 3).shifted(10), SourceSpan(11, 13))
        self.assertEqual(SourceSpan(1, 3).as_dict(), {"start": 1, "end": 3})


class TestSplitLineBreaks(unittest.TestCase):
    def test_breaks_and_offsets(self):
        self.assertEqual(
            split_line_breaks("a\\\\\\\\b"),
            [("a", 0), (None, 1), (None, 3), ("b", 5)],
        )

    def test_base_offset(self):
        self.assertEqual(
            split_line_breaks("ab\\\\c", base=10),
            [("ab", 10), (None, 12), ("c", 14)],
        )

    def test_no_breaks(self):
        self.assertEqual(split_line_breaks("plain"), [("plain", 0)])


if __name__ == "__main__":
    unittest.main()
