"""
Toolbar formatting commands.

Each command takes the document and a range and applies one structural
change through the document's own write path. Mark and block-type commands
keep positions stable; list and blockquote commands work on the top-level
blocks touched by the range and put the caret at the start of the result.
"""

from typing import Callable, List, Optional, Sequence, Tuple

from .document import Document
from .models import Range
from .nodes import (
    BOLD,
    ITALIC,
    Mark,
    MarkKind,
    Node,
    NodeKind,
    add_mark,
    blockquote,
    clamp_heading_level,
    has_mark,
    horizontal_rule,
    image,
    list_item,
    normalize_inline,
    remove_mark,
)

MarkTransform = Callable[[Tuple[Mark, ...]], Tuple[Mark, ...]]
BlockTransform = Callable[[Node], Node]


# =============================================================================
# MARKS
# =============================================================================


def is_marked(document: Document, range: Range, kind: MarkKind) -> bool:
    """True when every text character in ``range`` carries a mark of ``kind``."""
    texts = [node for node, _ in document.nodes_between(range.start, range.end) if node.kind.is_text]
    return bool(texts) and all(has_mark(node.marks, kind) for node in texts)


def toggle_mark(document: Document, range: Range, mark: Mark) -> bool:
    """Add ``mark`` to the range, or remove it if the whole range already has it. Returns the new state."""
    if range.empty:
        return False
    if is_marked(document, range, mark.kind):
        _apply_marks(document, range, lambda marks: remove_mark(marks, mark.kind))
        return False
    _apply_marks(document, range, lambda marks: add_mark(marks, mark))
    return True


def toggle_bold(document: Document, range: Range) -> bool:
    return toggle_mark(document, range, BOLD)


def toggle_italic(document: Document, range: Range) -> bool:
    return toggle_mark(document, range, ITALIC)


def set_link(document: Document, range: Range, href: str, target: Optional[str] = "_blank") -> None:
    if range.empty or not href:
        return
    rel = "noopener noreferrer nofollow" if target == "_blank" else None
    link = Mark.link(href, target, rel)
    _apply_marks(document, range, lambda marks: add_mark(marks, link))


def unset_link(document: Document, range: Range) -> None:
    _apply_marks(document, range, lambda marks: remove_mark(marks, MarkKind.LINK))


def _apply_marks(document: Document, range: Range, transform: MarkTransform) -> None:
    document.check_range(range)
    blocks = _map_text(document.blocks, range.start, range.end, transform, 0)
    document.set_blocks(blocks)


def _map_text(nodes: Sequence[Node], start: int, end: int, transform: MarkTransform, offset: int) -> List[Node]:
    result: List[Node] = []
    pos = offset
    for child in nodes:
        child_end = pos + child.node_size
        if child_end <= start or pos >= end:
            result.append(child)
        elif child.kind.is_text:
            cut_start, cut_end = max(start, pos) - pos, min(end, child_end) - pos
            if cut_start > 0:
                result.append(Node(NodeKind.TEXT, text=child.text[:cut_start], marks=child.marks))
            result.append(Node(NodeKind.TEXT, text=child.text[cut_start:cut_end], marks=transform(child.marks)))
            if cut_end < len(child.text):
                result.append(Node(NodeKind.TEXT, text=child.text[cut_end:], marks=child.marks))
        elif child.content:
            inner = _map_text(child.content, start, end, transform, pos + 1)
            result.append(child.with_content(normalize_inline(inner) if child.kind.is_textblock else inner))
        else:
            result.append(child)
        pos = child_end
    return result


# =============================================================================
# TEXTBLOCK TYPE
# =============================================================================


def set_paragraph(document: Document, range: Range) -> None:
    _map_textblocks(document, range, lambda node: node.retyped(NodeKind.PARAGRAPH))


def set_heading(document: Document, range: Range, level: int) -> None:
    level = clamp_heading_level(level)
    _map_textblocks(document, range, lambda node: node.retyped(NodeKind.HEADING, level=level))


def toggle_heading(document: Document, range: Range, level: int) -> None:
    """Heading of ``level``, or back to paragraph if every block already is one."""
    level = clamp_heading_level(level)
    blocks = _textblocks_in(document, range)
    if blocks and all(node.kind is NodeKind.HEADING and node.attr("level") == level for node in blocks):
        set_paragraph(document, range)
    else:
        set_heading(document, range, level)


def _textblocks_in(document: Document, range: Range) -> List[Node]:
    start, end = _touch(document, range)
    return [node for node, _ in document.nodes_between(start, end) if node.kind.is_textblock]


def _touch(document: Document, range: Range) -> Tuple[int, int]:
    """A caret still touches the block it sits in."""
    if range.empty:
        return range.start, min(range.start + 1, document.size)
    return range.start, range.end


def _map_textblocks(document: Document, range: Range, transform: BlockTransform) -> None:
    document.check_range(range)
    start, end = _touch(document, range)

    def _walk(nodes: Sequence[Node], offset: int) -> List[Node]:
        result: List[Node] = []
        pos = offset
        for child in nodes:
            child_end = pos + child.node_size
            if child_end <= start or pos >= end:
                result.append(child)
            elif child.kind.is_textblock:
                result.append(transform(child))
            elif child.kind.is_container:
                result.append(child.with_content(_walk(child.content, pos + 1)))
            else:
                result.append(child)
            pos = child_end
        return result

    document.set_blocks(_walk(document.blocks, 0))


# =============================================================================
# WRAPPING (top-level blocks)
# =============================================================================


def _top_level_span(document: Document, range: Range) -> Tuple[int, int]:
    """Indexes ``[first, last]`` of the top-level blocks touched by ``range`` (-1, -1 if none)."""
    start, end = _touch(document, range)
    first = last = -1
    pos = 0
    for index, block in enumerate(document.blocks):
        block_end = pos + block.node_size
        if block_end > start and pos < end:
            if first < 0:
                first = index
            last = index
        pos = block_end
    return first, last


def _position_of(document: Document, index: int) -> int:
    return sum(block.node_size for block in document.blocks[:index])


def toggle_list(document: Document, range: Range, kind: NodeKind) -> None:
    """Wrap the touched blocks in a list of ``kind``, or unwrap them if they already are one."""
    if not kind.is_list:
        raise ValueError(f"{kind} is not a list kind")
    first, last = _top_level_span(document, range)
    if first < 0:
        return
    blocks = list(document.blocks)
    touched = blocks[first:last + 1]

    if all(block.kind is kind for block in touched):
        replacement: List[Node] = []
        for block in touched:
            for item in block.content:
                replacement.extend(item.content)
    else:
        items: List[Node] = []
        for block in touched:
            if block.kind.is_list:
                items.extend(block.content)
            elif block.kind is NodeKind.BLOCKQUOTE:
                items.append(list_item(*block.content))
            else:
                items.append(list_item(block))
        replacement = [Node(kind, content=tuple(items))]

    caret = _position_of(document, first) + 1
    document.set_blocks(blocks[:first] + replacement + blocks[last + 1:], caret)


def toggle_bullet_list(document: Document, range: Range) -> None:
    toggle_list(document, range, NodeKind.BULLET_LIST)


def toggle_ordered_list(document: Document, range: Range) -> None:
    toggle_list(document, range, NodeKind.ORDERED_LIST)


def toggle_blockquote(document: Document, range: Range) -> None:
    first, last = _top_level_span(document, range)
    if first < 0:
        return
    blocks = list(document.blocks)
    touched = blocks[first:last + 1]

    if all(block.kind is NodeKind.BLOCKQUOTE for block in touched):
        replacement: List[Node] = []
        for block in touched:
            replacement.extend(block.content)
    else:
        inner: List[Node] = []
        for block in touched:
            inner.extend(block.content if block.kind is NodeKind.BLOCKQUOTE else (block,))
        replacement = [blockquote(*inner)]

    caret = _position_of(document, first) + 1
    document.set_blocks(blocks[:first] + replacement + blocks[last + 1:], caret)


# =============================================================================
# INSERTION
# =============================================================================


def insert_image(document: Document, range: Range, src: str, alt: Optional[str] = None) -> Range:
    """Replace ``range`` with an image block."""
    return document.replace(range, [image(src, alt)])


def insert_horizontal_rule(document: Document, range: Range) -> Range:
    return document.replace(range, [horizontal_rule()])
