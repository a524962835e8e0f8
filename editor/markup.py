"""
Editor Markup - Conversion between HTML markup and the node tree.

Parsing uses BeautifulSoup with the stdlib ``html.parser`` backend and maps
the editor schema:

- p, h1-h6 (levels above 3 collapse to 3), ul/ol/li, blockquote, img, hr, br
- strong/b, em/i and a become marks on text runs
- structural wrappers (div, section, article, ...) are unwrapped
- unknown inline tags keep their text and lose the tag
- whitespace collapses the way browsers render it

Serialization emits compact markup (no indentation) with the same escaping
rules for whole documents and fragments, so any serialized range appears
verbatim inside the serialized document when it covers whole text runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment, Declaration, Doctype, ProcessingInstruction

from .nodes import (
    BOLD,
    ITALIC,
    Mark,
    MarkKind,
    Node,
    NodeKind,
    add_mark,
    blockquote,
    bullet_list,
    clamp_heading_level,
    hard_break,
    horizontal_rule,
    image,
    list_item,
    normalize_blocks,
    normalize_inline,
    ordered_list,
    paragraph,
)

_WHITESPACE_RE = re.compile(r"[ \t\n\r\f]+")
_TRAILING_PARTIAL_TAG_RE = re.compile(r"<[^<>]*$")

HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
LIST_TAGS = {"ul", "ol"}
WRAPPER_TAGS = {
    "html", "body", "main", "article", "section", "div", "header", "footer",
    "aside", "nav", "figure", "figcaption", "form", "table", "thead", "tbody",
    "tfoot", "tr", "td", "th", "center", "details", "summary", "dl", "dt",
    "dd", "pre", "address", "fieldset",
}
SKIPPED_TAGS = {
    "head", "title", "meta", "link", "script", "style", "noscript",
    "template", "iframe", "object", "embed", "svg", "canvas",
}
BLOCK_TAGS = (
    {"p", "li", "blockquote", "img", "hr"}
    | set(HEADING_TAGS) | LIST_TAGS | WRAPPER_TAGS
)
BOLD_TAGS = {"strong", "b"}
ITALIC_TAGS = {"em", "i"}
_IGNORED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


@dataclass(frozen=True)
class ParsedFragment:
    """
    Parsed markup ready for insertion.

    ``open_start``/``open_end`` give how many levels the fragment's first and
    last nodes may merge into the surrounding structure at the insertion
    point (an inline fragment is a paragraph open on both sides).
    """

    nodes: Tuple[Node, ...]
    open_start: int = 0
    open_end: int = 0
    inline_only: bool = False

    @property
    def size(self) -> int:
        return sum(node.node_size for node in self.nodes)

    @classmethod
    def closed(cls, nodes: Sequence[Node]) -> "ParsedFragment":
        return cls(tuple(nodes), 0, 0, False)


# =============================================================================
# PARSING
# =============================================================================


def _soup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup or "", "html.parser")


def parse_document(markup: str) -> Tuple[Node, ...]:
    """Parse markup into top-level blocks; never returns an empty tuple."""
    blocks = _MarkupParser().parse_blocks(_soup(markup).contents)
    return normalize_blocks(blocks) or (paragraph(),)


def parse_fragment(markup: str) -> ParsedFragment:
    """Parse markup destined for insertion into an existing document."""
    soup = _soup(markup)
    parser = _MarkupParser()
    is_inline = not any(
        isinstance(element, Tag) and element.name in BLOCK_TAGS
        for element in soup.descendants
    )
    if is_inline:
        inline = normalize_inline(parser.parse_inline(soup.contents, ()))
        if not inline:
            return ParsedFragment(())
        return ParsedFragment((paragraph(*inline),), 1, 1, True)

    blocks = normalize_blocks(parser.parse_blocks(soup.contents))
    if not blocks:
        return ParsedFragment(())
    return ParsedFragment(
        blocks,
        open_depth(blocks[0], leading=True),
        open_depth(blocks[-1], leading=False),
        False,
    )


def open_depth(node: Node, leading: bool) -> int:
    """Depth of the textblock reached by following first (or last) children."""
    depth = 0
    while not node.kind.is_textblock:
        if not node.kind.is_container or not node.content:
            return 0
        node = node.content[0] if leading else node.content[-1]
        depth += 1
    return depth + 1


def strip_partial_tag(markup: str) -> str:
    """Drop an unterminated tag at the end of streamed markup."""
    return _TRAILING_PARTIAL_TAG_RE.sub("", markup)


class _MarkupParser:
    """Walks a BeautifulSoup tree and produces schema-valid nodes."""

    def parse_blocks(self, elements: Iterable) -> List[Node]:
        blocks: List[Node] = []
        pending: List[Node] = []
        orphan_items: List[Node] = []

        def flush_pending():
            if _has_visible_content(pending):
                close_orphans()
                blocks.extend(_split_textblock(NodeKind.PARAGRAPH, (), pending))
            else:
                # whitespace between blocks
                blocks.extend(node for node in pending if node.kind in (NodeKind.IMAGE, NodeKind.HORIZONTAL_RULE))
            del pending[:]

        def close_orphans():
            if orphan_items:
                blocks.append(bullet_list(*orphan_items))
                del orphan_items[:]

        for element in elements:
            if isinstance(element, _IGNORED_STRINGS):
                continue
            if isinstance(element, NavigableString):
                pending.extend(self.parse_inline([element], ()))
                continue
            if not isinstance(element, Tag):
                continue
            name = (element.name or "").lower()
            if name in SKIPPED_TAGS:
                continue
            if name not in BLOCK_TAGS:
                pending.extend(self.parse_inline([element], ()))
                continue
            flush_pending()
            if name == "li":
                orphan_items.append(self._list_item(element))
                continue
            close_orphans()
            blocks.extend(self._block(element, name))

        flush_pending()
        close_orphans()
        return blocks

    def _block(self, element: Tag, name: str) -> List[Node]:
        if name == "p":
            return _split_textblock(NodeKind.PARAGRAPH, (), self.parse_inline(element.contents, ()))
        if name in HEADING_TAGS:
            level = clamp_heading_level(HEADING_TAGS[name])
            return _split_textblock(
                NodeKind.HEADING, (("level", level),), self.parse_inline(element.contents, ())
            )
        if name in LIST_TAGS:
            return [self._list(element, name)]
        if name == "blockquote":
            return [blockquote(*self.parse_blocks(element.contents))]
        if name == "img":
            return [_image_from(element)]
        if name == "hr":
            return [horizontal_rule()]
        return self.parse_blocks(element.contents)

    def _list(self, element: Tag, name: str) -> Node:
        items: List[Node] = []
        for child in element.contents:
            if isinstance(child, Tag) and child.name == "li":
                items.append(self._list_item(child))
            elif isinstance(child, Tag) and child.name in LIST_TAGS and items:
                nested = self._list(child, child.name)
                items[-1] = items[-1].with_content(items[-1].content + (nested,))
            elif isinstance(child, NavigableString) and not str(child).strip():
                continue
            elif not isinstance(child, _IGNORED_STRINGS):
                blocks = self.parse_blocks([child])
                if blocks:
                    items.append(list_item(*blocks))
        if not items:
            items.append(list_item())
        if name == "ol":
            return ordered_list(*items, start=_int_attr(element, "start", 1))
        return bullet_list(*items)

    def _list_item(self, element: Tag) -> Node:
        return list_item(*self.parse_blocks(element.contents))

    def parse_inline(self, elements: Iterable, marks: Tuple[Mark, ...]) -> List[Node]:
        """Inline nodes for ``elements``; images are returned in place for splitting."""
        result: List[Node] = []
        for element in elements:
            if isinstance(element, _IGNORED_STRINGS):
                continue
            if isinstance(element, NavigableString):
                value = _WHITESPACE_RE.sub(" ", str(element))
                if value:
                    result.append(Node(NodeKind.TEXT, text=value, marks=marks))
                continue
            if not isinstance(element, Tag):
                continue
            name = (element.name or "").lower()
            if name in SKIPPED_TAGS:
                continue
            if name == "br":
                result.append(hard_break())
            elif name == "img":
                result.append(_image_from(element))
            elif name == "hr":
                result.append(horizontal_rule())
            elif name in BOLD_TAGS:
                result.extend(self.parse_inline(element.contents, add_mark(marks, BOLD)))
            elif name in ITALIC_TAGS:
                result.extend(self.parse_inline(element.contents, add_mark(marks, ITALIC)))
            elif name == "a" and element.get("href"):
                link = Mark.link(
                    element.get("href"),
                    target=element.get("target"),
                    rel=_joined_attr(element, "rel"),
                )
                result.extend(self.parse_inline(element.contents, add_mark(marks, link)))
            else:
                result.extend(self.parse_inline(element.contents, marks))
        return result


def _image_from(element: Tag) -> Node:
    return image(element.get("src"), alt=element.get("alt"), title=element.get("title"))


def _int_attr(element: Tag, name: str, default: int) -> int:
    try:
        return int(element.get(name, default))
    except (TypeError, ValueError):
        return default


def _joined_attr(element: Tag, name: str) -> Optional[str]:
    value = element.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return value


def _has_visible_content(nodes: Sequence[Node]) -> bool:
    for node in nodes:
        if node.kind.is_text and node.text.strip(" "):
            return True
        if node.kind is NodeKind.HARD_BREAK:
            return True
    return False


def _trim_inline(nodes: Sequence[Node]) -> Tuple[Node, ...]:
    """Collapse whitespace across run boundaries and trim the textblock edges."""
    trimmed: List[Node] = []
    at_line_start = True
    for node in nodes:
        if node.kind.is_text:
            value = node.text
            if at_line_start:
                value = value.lstrip(" ")
            if value:
                trimmed.append(Node(NodeKind.TEXT, text=value, marks=node.marks))
                at_line_start = value.endswith(" ")
        else:
            if trimmed and trimmed[-1].kind.is_text and trimmed[-1].text.endswith(" "):
                last = trimmed[-1]
                trimmed[-1] = Node(NodeKind.TEXT, text=last.text.rstrip(" "), marks=last.marks)
            trimmed.append(node)
            at_line_start = True
    if trimmed and trimmed[-1].kind.is_text:
        last = trimmed[-1]
        trimmed[-1] = Node(NodeKind.TEXT, text=last.text.rstrip(" "), marks=last.marks)
    return normalize_inline(trimmed)


def _split_textblock(kind: NodeKind, attrs, inline: Sequence[Node]) -> List[Node]:
    """Build textblocks from inline content, lifting block leaves out of the flow."""
    result: List[Node] = []
    current: List[Node] = []
    for node in inline:
        if node.kind in (NodeKind.IMAGE, NodeKind.HORIZONTAL_RULE):
            if _has_visible_content(current):
                result.append(Node(kind, content=_trim_inline(current), attrs=attrs))
            result.append(node)
            current = []
        else:
            current.append(node)
    if _has_visible_content(current) or not result:
        result.append(Node(kind, content=_trim_inline(current), attrs=attrs))
    return result


# =============================================================================
# SERIALIZATION
# =============================================================================


def escape_text(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("\u00a0", "&nbsp;")
    )


def escape_attr(value: str) -> str:
    return value.replace("&", "&amp;").replace('"', "&quot;").replace("\u00a0", "&nbsp;")


def _attr_string(pairs: Iterable[Tuple[str, Optional[str]]]) -> str:
    return "".join(f' {key}="{escape_attr(str(value))}"' for key, value in pairs if value is not None)


def _open_mark(mark: Mark) -> str:
    if mark.kind is MarkKind.BOLD:
        return "<strong>"
    if mark.kind is MarkKind.ITALIC:
        return "<em>"
    if mark.kind is MarkKind.LINK:
        return f"<a{_attr_string(mark.attrs)}>"
    raise ValueError(f"Unknown mark kind: {mark.kind}")


def _close_mark(mark: Mark) -> str:
    if mark.kind is MarkKind.BOLD:
        return "</strong>"
    if mark.kind is MarkKind.ITALIC:
        return "</em>"
    if mark.kind is MarkKind.LINK:
        return "</a>"
    raise ValueError(f"Unknown mark kind: {mark.kind}")


def serialize_nodes(nodes: Sequence[Node]) -> str:
    """Serialize a node sequence; runs of inline nodes share one mark stack."""
    out: List[str] = []
    run: List[Node] = []
    for node in nodes:
        if node.kind.is_inline:
            run.append(node)
            continue
        if run:
            _serialize_inline(run, out)
            run = []
        _serialize_node(node, out)
    if run:
        _serialize_inline(run, out)
    return "".join(out)


def _serialize_inline(nodes: Sequence[Node], out: List[str]) -> None:
    active: List[Mark] = []
    for node in nodes:
        marks = list(node.marks)
        keep = 0
        while keep < len(active) and keep < len(marks) and active[keep] == marks[keep]:
            keep += 1
        while len(active) > keep:
            out.append(_close_mark(active.pop()))
        for mark in marks[keep:]:
            out.append(_open_mark(mark))
            active.append(mark)
        if node.kind.is_text:
            out.append(escape_text(node.text))
        else:
            _serialize_node(node, out)
    while active:
        out.append(_close_mark(active.pop()))


def _serialize_node(node: Node, out: List[str]) -> None:
    kind = node.kind
    if kind is NodeKind.DOC:
        out.append(serialize_nodes(node.content))
    elif kind is NodeKind.PARAGRAPH:
        out.append("<p>")
        _serialize_inline(node.content, out)
        out.append("</p>")
    elif kind is NodeKind.HEADING:
        level = clamp_heading_level(node.attr("level", 1))
        out.append(f"<h{level}>")
        _serialize_inline(node.content, out)
        out.append(f"</h{level}>")
    elif kind is NodeKind.BULLET_LIST:
        out.append("<ul>")
        out.append(serialize_nodes(node.content))
        out.append("</ul>")
    elif kind is NodeKind.ORDERED_LIST:
        start = node.attr("start", 1)
        out.append(f'<ol start="{start}">' if start != 1 else "<ol>")
        out.append(serialize_nodes(node.content))
        out.append("</ol>")
    elif kind is NodeKind.LIST_ITEM:
        out.append("<li>")
        out.append(serialize_nodes(node.content))
        out.append("</li>")
    elif kind is NodeKind.BLOCKQUOTE:
        out.append("<blockquote>")
        out.append(serialize_nodes(node.content))
        out.append("</blockquote>")
    elif kind is NodeKind.IMAGE:
        out.append(f"<img{_attr_string((key, node.attr(key)) for key in ('src', 'alt', 'title'))}>")
    elif kind is NodeKind.HORIZONTAL_RULE:
        out.append("<hr>")
    elif kind is NodeKind.HARD_BREAK:
        out.append("<br>")
    elif kind is NodeKind.TEXT:
        _serialize_inline([node], out)
    else:
        raise ValueError(f"Unknown node kind: {kind}")
