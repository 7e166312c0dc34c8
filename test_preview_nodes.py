# test_preview_nodes.py
#
# Run:
#   python -m unittest -v

import unittest

from preview_nodes import (
    SourcePositionMap,
    element,
    markup_node,
    resolve_click,
    text_node,
    to_html,
)
from tex_scanner import SourceSpan


def sample_tree():
    #   div (0)
    #     figure [10,40) (1)
    #       span (2)
    #         "cell" (3)
    #       br (4)
    #     "tail" [40,44) (5)
    cell = text_node("cell")
    inner = element("span", [cell])
    figure = element("figure", [inner, element("br")], span=SourceSpan(10, 40))
    tail = text_node("tail", span=SourceSpan(40, 44))
    root = element("div", [figure, tail], attrs={"id": "preview-content"})
    return root, figure, inner, cell, tail


class TestSourcePositionMap(unittest.TestCase):
    def test_ids_follow_document_order(self):
        root, figure, inner, cell, tail = sample_tree()
        pos_map = SourcePositionMap.build(root)
        self.assertEqual(len(pos_map), 6)
        self.assertEqual(
            [pos_map.node_id(n) for n in (root, figure, inner, cell, tail)],
            [0, 1, 2, 3, 5],
        )
        self.assertIs(pos_map.node(3), cell)
        self.assertIsNone(pos_map.node(99))

    def test_lookup_walks_up_to_nearest_tagged_ancestor(self):
        root, figure, inner, cell, tail = sample_tree()
        pos_map = SourcePositionMap.build(root)
        self.assertEqual(pos_map.lookup(pos_map.node_id(cell)), SourceSpan(10, 40))
        self.assertEqual(pos_map.lookup(pos_map.node_id(tail)), SourceSpan(40, 44))

    def test_lookup_without_tagged_ancestor(self):
        root, *_ = sample_tree()
        pos_map = SourcePositionMap.build(root)
        self.assertIsNone(pos_map.lookup(0))
        self.assertIsNone(pos_map.lookup(-1))
        self.assertIsNone(pos_map.lookup(6))

    def test_tagged_spans(self):
        root, *_ = sample_tree()
        self.assertEqual(
            SourcePositionMap.build(root).tagged_spans(),
            [SourceSpan(10, 40), SourceSpan(40, 44)],
        )


class TestResolveClick(unittest.TestCase):
    def test_inside_document(self):
        self.assertEqual(resolve_click(2, 5, 10), SourceSpan(2, 5))
        self.assertEqual(resolve_click(0, 10, 10), SourceSpan(0, 10))

    def test_outside_document_is_noop(self):
        self.assertIsNone(resolve_click(2, 11, 10))
        self.assertIsNone(resolve_click(-1, 3, 10))
        self.assertIsNone(resolve_click(5, 4, 10))


class TestToHtml(unittest.TestCase):
    def test_attributes_and_void_tags(self):
        root, *_ = sample_tree()
        out = to_html(root, SourcePositionMap.build(root))
        self.assertEqual(
            out,
            '<div id="preview-content">'
            '<figure data-source-position="{&quot;start&quot;:10,&quot;end&quot;:40}" data-node-id="1">'
            "<span>cell</span><br />"
            "</figure>"
            '<span data-source-position="{&quot;start&quot;:40,&quot;end&quot;:44}" data-node-id="5">tail</span>'
            "</div>",
        )

    def test_text_is_escaped_markup_is_not(self):
        node = element("p", [text_node("a < b"), markup_node("<img />")], classes=["x", "y"])
        self.assertEqual(to_html(node), '<p class="x y">a &lt; b<img /></p>')

    def test_plain_text(self):
        root, *_ = sample_tree()
        self.assertEqual(root.plain_text(), "cell\ntail")


if __name__ == "__main__":
    unittest.main()
