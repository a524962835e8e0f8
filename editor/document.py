"""
Document Model - Structured rich-text content with a flattened position space.

Positions count tokens: one per text character, one per leaf node, and one
for each opening and closing boundary of every other node. Position 0 is
the start of the document content; ``size`` is its end.

Read operations:
- serialize(range): markup of a range, cut at the innermost shared ancestor
- text_content(): flattened text
- text_between(start, end): text with block separators
- nodes_between(start, end): nodes overlapping a range, in document order

Write operations (all atomic; the tree is rebuilt and swapped in one step):
- replace(range, markup): delete the range, insert parsed markup, caret at its end
- insert_at(position, markup)
- set_whole_document(markup)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import InvalidRangeError
from .markup import ParsedFragment, parse_document, parse_fragment, serialize_nodes
from .models import ImageAttributes, Range
from .nodes import Node, NodeKind, doc, normalize_blocks, normalize_inline

logger = logging.getLogger(__name__)

Insertable = Union[str, ParsedFragment, Sequence[Node]]
ChangeListener = Callable[["Document"], None]


@dataclass(frozen=True)
class ResolvedPosition:
    """A position together with the chain of nodes that contain it."""

    pos: int
    path: Tuple[Tuple[Node, int], ...]  # (ancestor, content start) from the root down

    @property
    def depth(self) -> int:
        return len(self.path) - 1

    @property
    def parent(self) -> Node:
        return self.path[-1][0]

    def node(self, depth: int) -> Node:
        return self.path[depth][0]

    def start(self, depth: int) -> int:
        return self.path[depth][1]

    def end(self, depth: int) -> int:
        node, start = self.path[depth]
        return start + node.content_size


class Document:
    """
    Editable document owned by a single editing session.

    Example:
        document = Document.from_markup("<p>Hello world</p>")
        document.serialize(Range(1, 6))        # 'Hello'
        document.replace(Range(7, 12), "team")
        document.serialize()                   # '<p>Hello team</p>'
    """

    def __init__(self, blocks: Optional[Sequence[Node]] = None):
        self._root = doc(*normalize_blocks(blocks or ()))
        self.caret = 0
        self.version = 0
        self._listeners: List[ChangeListener] = []

    @classmethod
    def from_markup(cls, markup: str) -> "Document":
        return cls(parse_document(markup))

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def root(self) -> Node:
        return self._root

    @property
    def blocks(self) -> Tuple[Node, ...]:
        return self._root.content

    @property
    def size(self) -> int:
        return self._root.content_size

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _commit(self, blocks: Sequence[Node], caret: int) -> None:
        self._root = doc(*normalize_blocks(blocks))
        self.caret = max(0, min(caret, self.size))
        self.version += 1
        for listener in list(self._listeners):
            listener(self)

    def check_range(self, range: Range) -> None:
        if range.start < 0 or range.end < range.start or range.end > self.size:
            raise InvalidRangeError(range.start, range.end, self.size)

    def resolve(self, pos: int) -> ResolvedPosition:
        if pos < 0 or pos > self.size:
            raise InvalidRangeError(pos, pos, self.size)
        path: List[Tuple[Node, int]] = [(self._root, 0)]
        node, offset = self._root, 0
        while True:
            child_pos = offset
            descended = False
            for child in node.content:
                child_end = child_pos + child.node_size
                if child_pos >= pos:
                    break
                if pos < child_end and not child.kind.is_text and not child.kind.is_leaf:
                    path.append((child, child_pos + 1))
                    node, offset = child, child_pos + 1
                    descended = True
                    break
                child_pos = child_end
            if not descended:
                return ResolvedPosition(pos, tuple(path))

    def shared_depth(self, start: int, end: int) -> int:
        first, last = self.resolve(start), self.resolve(end)
        depth = min(first.depth, last.depth)
        while depth > 0 and first.start(depth) != last.start(depth):
            depth -= 1
        return depth

    # =========================================================================
    # READ
    # =========================================================================

    def slice(self, range: Range) -> Tuple[Node, ...]:
        """Content of ``range`` cut below the innermost ancestor shared by both ends."""
        self.check_range(range)
        resolved = self.resolve(range.start)
        depth = self.shared_depth(range.start, range.end)
        node, content_start = resolved.node(depth), resolved.start(depth)
        return tuple(_cut(node.content, range.start - content_start, range.end - content_start))

    def serialize(self, range: Optional[Range] = None) -> str:
        if range is None:
            return serialize_nodes(self._root.content)
        return serialize_nodes(self.slice(range))

    def text_content(self) -> str:
        return self._root.text_content

    def nodes_between(self, start: int, end: int) -> Iterator[Tuple[Node, int]]:
        """Yield ``(node, position)`` for every node overlapping ``[start, end)``."""
        if start < 0 or end < start or end > self.size:
            raise InvalidRangeError(start, end, self.size)
        yield from _nodes_between(self._root.content, start, end, 0)

    def text_between(self, start: int, end: int, block_separator: str = "\n") -> str:
        parts: List[str] = []
        first = True
        for node, pos in self.nodes_between(start, end):
            if node.kind.is_text:
                piece = node.text[max(start, pos) - pos:end - pos]
            elif node.kind is NodeKind.HARD_BREAK:
                piece = "\n"
            else:
                piece = ""
            if node.kind.is_textblock and block_separator:
                if first:
                    first = False
                else:
                    parts.append(block_separator)
            parts.append(piece)
        return "".join(parts)

    def images_between(self, start: int, end: int) -> List[Tuple[int, ImageAttributes]]:
        return [
            (pos, ImageAttributes(node.attr("src"), node.attr("alt")))
            for node, pos in self.nodes_between(start, end)
            if node.kind is NodeKind.IMAGE
        ]

    def find_image(self, source: Optional[str]) -> Optional[int]:
        """Position of the first image whose source equals ``source``."""
        for node, pos in _nodes_between(self._root.content, 0, self.size, 0):
            if node.kind is NodeKind.IMAGE and node.attr("src") == source:
                return pos
        return None

    def node_at(self, pos: int) -> Optional[Node]:
        """The node starting exactly at ``pos``, if any."""
        for node, node_pos in _nodes_between(self._root.content, pos, pos + 1, 0):
            if node_pos == pos and not node.kind.is_text:
                return node
        return None

    def textblock_ranges(self) -> List[Range]:
        """Content range of every textblock, in document order."""
        return [
            Range(pos + 1, pos + 1 + node.content_size)
            for node, pos in _nodes_between(self._root.content, 0, self.size, 0)
            if node.kind.is_textblock
        ]

    # =========================================================================
    # WRITE
    # =========================================================================

    def replace(self, range: Range, content: Insertable) -> Range:
        """
        Delete ``range`` and insert ``content`` in its place.

        The inserted fragment merges into the open structure around the range
        (inline content joins the surrounding textblock, list items join the
        surrounding list). Returns the range covered by the inserted content;
        the caret moves to its end.
        """
        self.check_range(range)
        fragment = _as_fragment(content)
        start_depth = self.resolve(range.start).depth
        end_depth = self.resolve(range.end).depth

        left = _cut(self._root.content, 0, range.start)
        right = _cut(self._root.content, range.end, self.size)

        if fragment.nodes:
            head, head_open = _join(left, start_depth, list(fragment.nodes), fragment.open_start, fragment.open_end)
        else:
            head, head_open = left, start_depth
        caret = _size(head) - head_open
        if fragment.nodes and start_depth > 0 and fragment.open_start > 0:
            inserted_start = range.start
        else:
            inserted_start = _size(left) if fragment.nodes else range.start
        merged, _ = _join(head, head_open, right, end_depth, 0)

        self._commit(merged, caret)
        logger.debug("Replaced %s with %d node(s), caret=%d", range.to_dict(), len(fragment.nodes), self.caret)
        return Range(min(inserted_start, self.caret), self.caret)

    def insert_at(self, position: int, content: Insertable) -> Range:
        return self.replace(Range(position, position), content)

    def delete(self, range: Range) -> None:
        self.replace(range, ParsedFragment(()))

    def replace_node(self, pos: int, node: Node) -> None:
        """Swap the node starting at ``pos`` for ``node``, leaving its ancestors intact."""
        if self.node_at(pos) is None:
            raise InvalidRangeError(pos, pos, self.size)
        self._commit(_replace_at(self._root.content, pos, node), pos + node.node_size)

    def set_whole_document(self, markup: str) -> None:
        """Reload from markup, keeping the caret as close to where it was as the new size allows."""
        self._commit(parse_document(markup), self.caret)

    def set_blocks(self, blocks: Sequence[Node], caret: Optional[int] = None) -> None:
        self._commit(blocks, self.caret if caret is None else caret)


# =============================================================================
# TREE HELPERS
# =============================================================================


def _as_fragment(content: Insertable) -> ParsedFragment:
    if isinstance(content, ParsedFragment):
        return content
    if isinstance(content, str):
        return parse_fragment(content)
    return ParsedFragment.closed(content)


def _size(nodes: Sequence[Node]) -> int:
    return sum(node.node_size for node in nodes)


def _nodes_between(nodes: Sequence[Node], start: int, end: int, offset: int) -> Iterator[Tuple[Node, int]]:
    pos = offset
    for child in nodes:
        if pos >= end:
            break
        child_end = pos + child.node_size
        if child_end > start:
            yield child, pos
            if child.content:
                yield from _nodes_between(child.content, start, end, pos + 1)
        pos = child_end


def _cut(nodes: Sequence[Node], start: int, end: int) -> List[Node]:
    """Nodes restricted to ``[start, end)``, relative to the start of their parent's content."""
    result: List[Node] = []
    pos = 0
    for child in nodes:
        child_end = pos + child.node_size
        if child_end > start and pos < end:
            if child.kind.is_text:
                piece = child.text[max(0, start - pos):min(len(child.text), end - pos)]
                if piece:
                    result.append(Node(NodeKind.TEXT, text=piece, marks=child.marks))
            elif child.kind.is_leaf or (start <= pos and child_end <= end):
                result.append(child)
            else:
                result.append(child.with_content(_cut(child.content, start - pos - 1, end - pos - 1)))
        elif pos >= end:
            break
        pos = child_end
    return result


def _replace_at(nodes: Sequence[Node], pos: int, replacement: Node) -> List[Node]:
    result: List[Node] = []
    offset = 0
    for child in nodes:
        child_end = offset + child.node_size
        if offset == pos:
            result.append(replacement)
        elif offset < pos < child_end and child.content:
            result.append(child.with_content(_replace_at(child.content, pos - offset - 1, replacement)))
        else:
            result.append(child)
        offset = child_end
    return result


def _join(
    left: List[Node],
    open_left: int,
    right: List[Node],
    open_right: int,
    right_end_open: int,
) -> Tuple[List[Node], int]:
    """
    Concatenate two node lists, merging their open edges.

    ``open_left`` is how deep the right edge of ``left`` is open, ``open_right``
    how deep the left edge of ``right`` is open. Returns the joined list and
    the open depth of its right edge.
    """
    if not right:
        return list(left), open_left
    if not left or open_left <= 0 or open_right <= 0:
        return list(left) + list(right), right_end_open

    a, b = left[-1], right[0]
    rest = list(right[1:])
    single = not rest

    if a.kind.is_textblock and b.kind.is_textblock:
        merged = a.with_content(normalize_inline(a.content + b.content))
        return left[:-1] + [merged] + rest, right_end_open

    if a.kind is b.kind and a.kind.is_container:
        inner, inner_end = _join(
            list(a.content), open_left - 1, list(b.content), open_right - 1,
            right_end_open - 1 if single else 0,
        )
        return left[:-1] + [a.with_content(inner)] + rest, (inner_end + 1 if single else right_end_open)

    if open_left > open_right and a.kind.is_container:
        inner, inner_end = _join(
            list(a.content), open_left - 1, [b], open_right,
            right_end_open if single else 0,
        )
        return left[:-1] + [a.with_content(inner)] + rest, (inner_end + 1 if single else right_end_open)

    if b.kind.is_container:
        lifted, remainder = _take_leading_textblock(b, open_right - 1)
        if lifted is not None:
            trailing = ([remainder] if remainder is not None else []) + rest
            joined, joined_end = _join(left, open_left, [lifted], 1, 1)
            return joined + trailing, (right_end_open if trailing else joined_end)

    return list(left) + list(right), right_end_open


def _take_leading_textblock(node: Node, depth: int) -> Tuple[Optional[Node], Optional[Node]]:
    """Detach the first textblock on the open left edge of ``node``."""
    if depth <= 0 or not node.content:
        return None, node
    first = node.content[0]
    if first.kind.is_textblock:
        remaining = node.content[1:]
        return first, (node.with_content(remaining) if remaining else None)
    if first.kind.is_container:
        lifted, remainder = _take_leading_textblock(first, depth - 1)
        if lifted is None:
            return None, node
        remaining = ((remainder,) if remainder is not None else ()) + node.content[1:]
        return lifted, (node.with_content(remaining) if remaining else None)
    return None, node
