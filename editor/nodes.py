"""
Editor Nodes - Tagged-variant tree for rich-text content.

Node kinds:
- Containers: DOC, BULLET_LIST, ORDERED_LIST, LIST_ITEM, BLOCKQUOTE
- Textblocks: PARAGRAPH, HEADING (levels 1-3)
- Leaves: IMAGE, HORIZONTAL_RULE, HARD_BREAK
- Inline text: TEXT, carrying marks (LINK, BOLD, ITALIC)

Sizes follow the flattened position space used by the document model:
a text node counts one position per character, a leaf counts one, and
every other node counts its content plus an opening and a closing token.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple


class NodeKind(str, Enum):
    DOC = "doc"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BULLET_LIST = "bullet_list"
    ORDERED_LIST = "ordered_list"
    LIST_ITEM = "list_item"
    BLOCKQUOTE = "blockquote"
    IMAGE = "image"
    HORIZONTAL_RULE = "horizontal_rule"
    HARD_BREAK = "hard_break"
    TEXT = "text"

    @property
    def is_text(self) -> bool:
        return self is NodeKind.TEXT

    @property
    def is_textblock(self) -> bool:
        return self in (NodeKind.PARAGRAPH, NodeKind.HEADING)

    @property
    def is_leaf(self) -> bool:
        return self in (NodeKind.IMAGE, NodeKind.HORIZONTAL_RULE, NodeKind.HARD_BREAK)

    @property
    def is_inline(self) -> bool:
        return self in (NodeKind.TEXT, NodeKind.HARD_BREAK)

    @property
    def is_list(self) -> bool:
        return self in (NodeKind.BULLET_LIST, NodeKind.ORDERED_LIST)

    @property
    def is_container(self) -> bool:
        """Block nodes whose content is other blocks."""
        return self in (
            NodeKind.DOC,
            NodeKind.BULLET_LIST,
            NodeKind.ORDERED_LIST,
            NodeKind.LIST_ITEM,
            NodeKind.BLOCKQUOTE,
        )


class MarkKind(str, Enum):
    LINK = "link"
    BOLD = "bold"
    ITALIC = "italic"


# Outer marks first when serializing nested inline markup
MARK_RANK = {
    MarkKind.LINK: 0,
    MarkKind.BOLD: 1,
    MarkKind.ITALIC: 2,
}


@dataclass(frozen=True)
class Mark:
    kind: MarkKind
    attrs: Tuple[Tuple[str, str], ...] = ()

    def attr(self, name: str) -> Optional[str]:
        for key, value in self.attrs:
            if key == name:
                return value
        return None

    @classmethod
    def link(cls, href: str, target: Optional[str] = None, rel: Optional[str] = None) -> "Mark":
        attrs = [("href", href)]
        if target:
            attrs.append(("target", target))
        if rel:
            attrs.append(("rel", rel))
        return cls(MarkKind.LINK, tuple(attrs))


BOLD = Mark(MarkKind.BOLD)
ITALIC = Mark(MarkKind.ITALIC)


def add_mark(marks: Sequence[Mark], mark: Mark) -> Tuple[Mark, ...]:
    """Return ``marks`` with ``mark`` added, replacing any mark of the same kind."""
    kept = [existing for existing in marks if existing.kind is not mark.kind]
    kept.append(mark)
    return tuple(sorted(kept, key=lambda m: MARK_RANK[m.kind]))


def remove_mark(marks: Sequence[Mark], kind: MarkKind) -> Tuple[Mark, ...]:
    return tuple(mark for mark in marks if mark.kind is not kind)


def has_mark(marks: Sequence[Mark], kind: MarkKind) -> bool:
    return any(mark.kind is kind for mark in marks)


@dataclass(frozen=True)
class Node:
    """
    Immutable document node.

    Only TEXT nodes use ``text`` and ``marks``; attributes are stored as a
    tuple of pairs so nodes stay hashable and comparable.
    """

    kind: NodeKind
    content: Tuple["Node", ...] = ()
    text: str = ""
    marks: Tuple[Mark, ...] = ()
    attrs: Tuple[Tuple[str, Any], ...] = ()

    def attr(self, name: str, default: Any = None) -> Any:
        for key, value in self.attrs:
            if key == name:
                return value
        return default

    @property
    def content_size(self) -> int:
        return sum(child.node_size for child in self.content)

    @property
    def node_size(self) -> int:
        if self.kind.is_text:
            return len(self.text)
        if self.kind.is_leaf:
            return 1
        return self.content_size + 2

    @property
    def text_content(self) -> str:
        if self.kind.is_text:
            return self.text
        if self.kind is NodeKind.HARD_BREAK:
            return "\n"
        return "".join(child.text_content for child in self.content)

    def with_content(self, content: Iterable["Node"]) -> "Node":
        return replace(self, content=tuple(content))

    def with_marks(self, marks: Iterable[Mark]) -> "Node":
        return replace(self, marks=tuple(marks))

    def with_attrs(self, **attrs: Any) -> "Node":
        merged = dict(self.attrs)
        merged.update(attrs)
        return replace(self, attrs=tuple((k, v) for k, v in merged.items() if v is not None))

    def retyped(self, kind: NodeKind, **attrs: Any) -> "Node":
        pairs = tuple((k, v) for k, v in attrs.items() if v is not None)
        return Node(kind, content=self.content, attrs=pairs)

    def iter_descendants(self):
        for child in self.content:
            yield child
            yield from child.iter_descendants()


# =============================================================================
# CONSTRUCTORS
# =============================================================================


def text(value: str, marks: Iterable[Mark] = ()) -> Node:
    return Node(NodeKind.TEXT, text=value, marks=tuple(marks))


def paragraph(*inline: Node) -> Node:
    return Node(NodeKind.PARAGRAPH, content=normalize_inline(inline))


def heading(level: int, *inline: Node) -> Node:
    return Node(NodeKind.HEADING, content=normalize_inline(inline), attrs=(("level", clamp_heading_level(level)),))


def bullet_list(*items: Node) -> Node:
    return Node(NodeKind.BULLET_LIST, content=tuple(items))


def ordered_list(*items: Node, start: int = 1) -> Node:
    attrs = (("start", start),) if start != 1 else ()
    return Node(NodeKind.ORDERED_LIST, content=tuple(items), attrs=attrs)


def list_item(*blocks: Node) -> Node:
    return Node(NodeKind.LIST_ITEM, content=tuple(blocks) or (paragraph(),))


def blockquote(*blocks: Node) -> Node:
    return Node(NodeKind.BLOCKQUOTE, content=tuple(blocks) or (paragraph(),))


def image(src: Optional[str], alt: Optional[str] = None, title: Optional[str] = None) -> Node:
    attrs = tuple((k, v) for k, v in (("src", src), ("alt", alt), ("title", title)) if v is not None)
    return Node(NodeKind.IMAGE, attrs=attrs)


def horizontal_rule() -> Node:
    return Node(NodeKind.HORIZONTAL_RULE)


def hard_break() -> Node:
    return Node(NodeKind.HARD_BREAK)


def doc(*blocks: Node) -> Node:
    return Node(NodeKind.DOC, content=tuple(blocks) or (paragraph(),))


def clamp_heading_level(level: int) -> int:
    return max(1, min(3, int(level)))


# =============================================================================
# NORMALIZATION
# =============================================================================


def normalize_inline(nodes: Iterable[Node]) -> Tuple[Node, ...]:
    """Drop empty text runs and merge adjacent runs that carry the same marks."""
    merged: List[Node] = []
    for node in nodes:
        if node.kind.is_text:
            if not node.text:
                continue
            if merged and merged[-1].kind.is_text and merged[-1].marks == node.marks:
                merged[-1] = replace(merged[-1], text=merged[-1].text + node.text)
                continue
        merged.append(node)
    return tuple(merged)


def normalize_blocks(nodes: Iterable[Node]) -> Tuple[Node, ...]:
    """Repair container content so every node satisfies the schema."""
    result: List[Node] = []
    loose: List[Node] = []

    def flush_loose():
        if loose:
            result.append(paragraph(*loose))
            del loose[:]

    for node in nodes:
        kind = node.kind
        if kind.is_inline:
            loose.append(node)
            continue
        flush_loose()
        if kind.is_textblock:
            result.append(node.with_content(normalize_inline(node.content)))
        elif kind.is_list:
            items: List[Node] = []
            for child in node.content:
                if child.kind is NodeKind.LIST_ITEM:
                    items.append(child)
                elif child.kind.is_list and items:
                    items[-1] = items[-1].with_content(items[-1].content + (child,))
                else:
                    items.append(list_item(child))
            if items:
                result.append(node.with_content(normalize_blocks(items)))
        elif kind is NodeKind.LIST_ITEM:
            blocks = normalize_blocks(node.content)
            if not blocks or blocks[0].kind is not NodeKind.PARAGRAPH:
                blocks = (paragraph(),) + blocks
            result.append(node.with_content(blocks))
        elif kind in (NodeKind.BLOCKQUOTE, NodeKind.DOC):
            result.append(node.with_content(normalize_blocks(node.content) or (paragraph(),)))
        else:
            result.append(node)
    flush_loose()
    return tuple(result)
