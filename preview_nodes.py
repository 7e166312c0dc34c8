#!/usr/bin/env python3
"""
preview_nodes.py

DOM-agnostic preview tree plus the source-position map used for
click-to-source synchronisation.

Nodes carry an optional SourceSpan. Clicking a node resolves to the span of
that node or of its nearest tagged ancestor.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional
import html
import json

from tex_scanner import SourceSpan

TEXT_TAG = "#text"
MARKUP_TAG = "#markup"  # trusted markup coming from the typesetter

_VOID_TAGS = {"br"}


@dataclass
class RenderedNode:
    tag: str
    text: Optional[str] = None
    children: list["RenderedNode"] = field(default_factory=list)
    span: Optional[SourceSpan] = None
    classes: list[str] = field(default_factory=list)
    attrs: dict[str, str] = field(default_factory=dict)

    def append(self, child: "RenderedNode") -> "RenderedNode":
        self.children.append(child)
        return child

    def extend(self, children: list["RenderedNode"]) -> None:
        self.children.extend(children)

    def iter_preorder(self) -> Iterator["RenderedNode"]:
        yield self
        for child in self.children:
            yield from child.iter_preorder()

    def plain_text(self) -> str:
        """Concatenated text content (markup nodes contribute nothing, <br> a newline)."""
        if self.tag == TEXT_TAG:
            return self.text or ""
        if self.tag == "br":
            return "\n"
        return "".join(child.plain_text() for child in self.children)


def text_node(text: str, *, span: Optional[SourceSpan] = None) -> RenderedNode:
    return RenderedNode(tag=TEXT_TAG, text=text, span=span)


def markup_node(markup: str) -> RenderedNode:
    return RenderedNode(tag=MARKUP_TAG, text=markup)


def element(
    tag: str,
    children: Optional[list[RenderedNode]] = None,
    *,
    classes: Optional[list[str]] = None,
    span: Optional[SourceSpan] = None,
    attrs: Optional[dict[str, str]] = None,
) -> RenderedNode:
    return RenderedNode(
        tag=tag,
        children=list(children or []),
        span=span,
        classes=list(classes or []),
        attrs=dict(attrs or {}),
    )


class SourcePositionMap:
    """
    Preorder node ids for one rendered tree plus reverse lookup to offsets.

    Built fresh for every render pass; ids are not stable across passes.
    """

    def __init__(self) -> None:
        self._nodes: list[RenderedNode] = []
        self._parents: list[Optional[int]] = []
        self._ids: dict[int, int] = {}

    @classmethod
    def build(cls, root: RenderedNode) -> "SourcePositionMap":
        pos_map = cls()
        stack: list[tuple[RenderedNode, Optional[int]]] = [(root, None)]
        while stack:
            node, parent_id = stack.pop()
            node_id = len(pos_map._nodes)
            pos_map._nodes.append(node)
            pos_map._parents.append(parent_id)
            pos_map._ids[id(node)] = node_id
            # reversed so that children get ids in document order
            for child in reversed(node.children):
                stack.append((child, node_id))
        return pos_map

    def __len__(self) -> int:
        return len(self._nodes)

    def node_id(self, node: RenderedNode) -> Optional[int]:
        return self._ids.get(id(node))

    def node(self, node_id: int) -> Optional[RenderedNode]:
        if 0 <= node_id < len(self._nodes):
            return self._nodes[node_id]
        return None

    def lookup(self, node_id: int) -> Optional[SourceSpan]:
        """Span of the node or of its nearest tagged ancestor."""
        current: Optional[int] = node_id if 0 <= node_id < len(self._nodes) else None
        while current is not None:
            span = self._nodes[current].span
            if span is not None:
                return span
            current = self._parents[current]
        return None

    def tagged_spans(self) -> list[SourceSpan]:
        return [n.span for n in self._nodes if n.span is not None]


def resolve_click(start: int, end: int, document_length: int) -> Optional[SourceSpan]:
    """
    Validate click-sync offsets against the current document.

    Anything outside [0, document_length] is a no-op (None).
    """
    if start < 0 or end < start or end > document_length:
        return None
    return SourceSpan(start, end)


# ---------------- HTML serialisation -----------------------------------------


def _render_attrs(node: RenderedNode, pos_map: Optional[SourcePositionMap]) -> str:
    attrs: list[str] = []
    if node.classes:
        attrs.append(f'class="{html.escape(" ".join(node.classes), quote=True)}"')
    for key, value in node.attrs.items():
        attrs.append(f'{html.escape(key, quote=True)}="{html.escape(value, quote=True)}"')
    if node.span is not None:
        pos = json.dumps(node.span.as_dict(), separators=(",", ":"))
        attrs.append(f'data-source-position="{html.escape(pos, quote=True)}"')
        if pos_map is not None:
            node_id = pos_map.node_id(node)
            if node_id is not None:
                attrs.append(f'data-node-id="{node_id}"')
    return (" " + " ".join(attrs)) if attrs else ""


def to_html(node: RenderedNode, pos_map: Optional[SourcePositionMap] = None) -> str:
    """Serialise a node tree to HTML."""
    if node.tag == TEXT_TAG:
        text = html.escape(node.text or "", quote=False)
        if node.span is None:
            return text
        # tagged text runs need an element to carry the attributes
        return f"<span{_render_attrs(node, pos_map)}>{text}</span>"

    if node.tag == MARKUP_TAG:
        return node.text or ""

    attrs = _render_attrs(node, pos_map)
    if node.tag in _VOID_TAGS:
        return f"<{node.tag}{attrs} />"

    inner = "".join(to_html(child, pos_map) for child in node.children)
    return f"<{node.tag}{attrs}>{inner}</{node.tag}>"
