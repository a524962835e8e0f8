"""
Visual Highlight Overlay - Non-destructive markers over the rendered view.

The rendered view is a BeautifulSoup tree produced from the document. A
highlight wraps the part of that tree covering a range in ``<mark>``
elements tagged with ``data-ai-highlight``; removal unwraps every tagged
marker and merges the text it split, so the tree serializes exactly as it
did before the highlight was applied.

Strategies (tried in order, each first asked whether it can mark the range):
- AtomicWrapStrategy: one marker around the whole range, possible when the
  range lies inside a single block and cuts no inline element in half
- PerNodeWrapStrategy: one marker per text run or image intersecting the range
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, NavigableString, Tag

from .document import Document
from .models import HighlightHandle, Range

logger = logging.getLogger(__name__)

HIGHLIGHT_TAG = "mark"
HIGHLIGHT_CLASS = "ai-edit-highlight"
HIGHLIGHT_ATTRIBUTE = "data-ai-highlight"
HIGHLIGHT_TOKEN_ATTRIBUTE = "data-ai-highlight-token"
HIGHLIGHT_STYLE = "background-color: rgba(250, 204, 21, 0.3); border-radius: 2px;"

VIEW_ROOT_CLASS = "copydesk-editor"

# Elements that own an opening and closing position
POSITIONED_TAGS = {"p", "h1", "h2", "h3", "ul", "ol", "li", "blockquote"}
LEAF_TAGS = {"img", "hr", "br"}


@dataclass
class Segment:
    """Part of the rendered tree that intersects a range."""

    node: object  # NavigableString or leaf Tag
    start: int  # offset into the string where the range begins
    end: int  # offset where it ends
    covered: bool  # whole node lies inside the range

    @property
    def is_text(self) -> bool:
        return isinstance(self.node, NavigableString)


class RenderedView:
    """BeautifulSoup rendering of a document, the surface highlights are drawn on."""

    def __init__(self, document: Document):
        self.soup: Optional[BeautifulSoup] = None
        self.root: Optional[Tag] = None
        self.render(document)

    def render(self, document: Document) -> None:
        markup = document.serialize()
        self.soup = BeautifulSoup(f'<div class="{VIEW_ROOT_CLASS}">{markup}</div>', "html.parser")
        self.root = self.soup.find("div", class_=VIEW_ROOT_CLASS)

    @property
    def html(self) -> str:
        return str(self.root)

    def markers(self) -> List[Tag]:
        return self.root.find_all(HIGHLIGHT_TAG, attrs={HIGHLIGHT_ATTRIBUTE: "true"})

    def segments(self, range: Range) -> List[Segment]:
        """Text runs and leaf elements overlapping ``range``, in reading order."""
        found: List[Segment] = []
        self._collect(self.root, 0, range, found)
        return found

    def spans(self) -> Dict[int, Tuple[int, int]]:
        """Position span of every element, keyed by ``id()``."""
        spans: Dict[int, Tuple[int, int]] = {}
        self._measure(self.root, 0, spans)
        return spans

    def _collect(self, element: Tag, pos: int, range: Range, found: List[Segment]) -> int:
        for child in element.children:
            if isinstance(child, NavigableString):
                length = len(child)
                start, end = max(range.start - pos, 0), min(range.end - pos, length)
                if start < end:
                    found.append(Segment(child, start, end, start == 0 and end == length))
                pos += length
            elif isinstance(child, Tag):
                if child.name in LEAF_TAGS:
                    if range.start <= pos < range.end and child.name == "img":
                        found.append(Segment(child, 0, 1, True))
                    pos += 1
                elif child.name in POSITIONED_TAGS:
                    pos = self._collect(child, pos + 1, range, found) + 1
                else:
                    pos = self._collect(child, pos, range, found)
        return pos

    def _measure(self, element: Tag, pos: int, spans: Dict[int, Tuple[int, int]]) -> int:
        start = pos
        for child in element.children:
            if isinstance(child, NavigableString):
                pos += len(child)
            elif isinstance(child, Tag):
                if child.name in LEAF_TAGS:
                    spans[id(child)] = (pos, pos + 1)
                    pos += 1
                elif child.name in POSITIONED_TAGS:
                    inner_end = self._measure(child, pos + 1, spans)
                    spans[id(child)] = (pos, inner_end + 1)
                    pos = inner_end + 1
                else:
                    pos = self._measure(child, pos, spans)
        spans[id(element)] = spans.get(id(element), (start, pos))
        return pos


# =============================================================================
# STRATEGIES
# =============================================================================


class HighlightStrategy(ABC):
    name = "base"

    def __init__(self, view: RenderedView):
        self.view = view

    @abstractmethod
    def can_wrap(self, range: Range, segments: Sequence[Segment]) -> bool:
        """Whether this strategy can mark ``segments``."""

    @abstractmethod
    def wrap(self, range: Range, segments: Sequence[Segment], token: str) -> int:
        """Insert markers; returns how many were created."""

    def _marker(self, token: str) -> Tag:
        return self.view.soup.new_tag(
            HIGHLIGHT_TAG,
            attrs={
                "class": HIGHLIGHT_CLASS,
                "style": HIGHLIGHT_STYLE,
                HIGHLIGHT_ATTRIBUTE: "true",
                HIGHLIGHT_TOKEN_ATTRIBUTE: token,
            },
        )


class AtomicWrapStrategy(HighlightStrategy):
    """One marker around the whole range."""

    name = "atomic"

    def can_wrap(self, range: Range, segments: Sequence[Segment]) -> bool:
        if not segments:
            return False
        first, last = self._boundary_children(segments)
        if first is None or last is None or first.parent is not last.parent:
            return False
        if first.parent.name not in POSITIONED_TAGS - {"ul", "ol", "blockquote"} and not _is_inline_tag(first.parent):
            return False
        spans = self.view.spans()
        for sibling in _siblings_between(first, last):
            if isinstance(sibling, Tag):
                if sibling.name in POSITIONED_TAGS:
                    return False
                span = spans.get(id(sibling))
                if span is None or span[0] < range.start or span[1] > range.end:
                    return False
        return True

    def wrap(self, range: Range, segments: Sequence[Segment], token: str) -> int:
        first_seg, last_seg = segments[0], segments[-1]
        if first_seg.node is last_seg.node and first_seg.is_text:
            inner = _split_text(first_seg.node, first_seg.start, first_seg.end)
            first = last = inner
        else:
            first = _split_text(first_seg.node, first_seg.start, first_seg.end) if first_seg.is_text else first_seg.node
            last = _split_text(last_seg.node, last_seg.start, last_seg.end) if last_seg.is_text else last_seg.node
            first, last = _child_under(first, _common_parent(first, last)), _child_under(last, _common_parent(first, last))

        nodes = list(_siblings_between(first, last))
        marker = self._marker(token)
        first.insert_before(marker)
        for node in nodes:
            marker.append(node.extract())
        return 1

    def _boundary_children(self, segments: Sequence[Segment]):
        first, last = segments[0].node, segments[-1].node
        parent = _common_parent(first, last)
        if parent is None:
            return None, None
        first_child, last_child = _child_under(first, parent), _child_under(last, parent)
        # A partially covered inline element cannot be wrapped as one unit
        if first_child is not first and not segments[0].covered:
            return None, None
        if last_child is not last and not segments[-1].covered:
            return None, None
        return first_child, last_child


class PerNodeWrapStrategy(HighlightStrategy):
    """One marker per text run or image, in reading order."""

    name = "per_node"

    def can_wrap(self, range: Range, segments: Sequence[Segment]) -> bool:
        return bool(segments)

    def wrap(self, range: Range, segments: Sequence[Segment], token: str) -> int:
        count = 0
        for segment in segments:
            if segment.is_text and not str(segment.node)[segment.start:segment.end].strip():
                continue
            node = _split_text(segment.node, segment.start, segment.end) if segment.is_text else segment.node
            node.wrap(self._marker(token))
            count += 1
        return count


# =============================================================================
# OVERLAY
# =============================================================================


class HighlightOverlay:
    """Applies and removes highlights on a RenderedView."""

    def __init__(self, view: RenderedView, strategies: Optional[Sequence[type]] = None):
        self.view = view
        self.strategy_types = list(strategies or (AtomicWrapStrategy, PerNodeWrapStrategy))

    def apply(self, range: Range) -> HighlightHandle:
        """
        Mark ``range`` in the view.

        Never raises: a strategy that fails is rolled back and the next one is
        tried; when none succeeds the handle reports no visible highlight.
        """
        self.strip_all()
        token = uuid.uuid4().hex
        try:
            segments = self.view.segments(range)
        except Exception as exc:
            logger.warning("Could not locate range %s in rendered view: %s", range.to_dict(), exc)
            return HighlightHandle(range, None, 0, token)

        for strategy_type in self.strategy_types:
            strategy = strategy_type(self.view)
            try:
                if not strategy.can_wrap(range, segments):
                    continue
                count = strategy.wrap(range, segments, token)
            except Exception as exc:
                logger.warning("Highlight strategy %s failed: %s", strategy.name, exc)
                self.strip_all()
                segments = self.view.segments(range)
                continue
            logger.debug("Highlighted %s with %s strategy (%d markers)", range.to_dict(), strategy.name, count)
            return HighlightHandle(range, strategy.name, count, token)

        logger.debug("No highlight strategy could wrap %s", range.to_dict())
        return HighlightHandle(range, None, 0, token)

    def remove(self, handle: Optional[HighlightHandle] = None) -> int:
        """Unwrap markers. Every tagged marker goes, including orphans from earlier handles."""
        return self.strip_all()

    def strip_all(self) -> int:
        return strip_markers(self.view.root)


def strip_markers(root: Tag) -> int:
    """Unwrap every highlight marker under ``root`` and merge the text it split."""
    markers = root.find_all(HIGHLIGHT_TAG, attrs={HIGHLIGHT_ATTRIBUTE: "true"})
    for marker in markers:
        marker.unwrap()
    if markers:
        root.smooth()
    return len(markers)


# =============================================================================
# TREE HELPERS
# =============================================================================


def _is_inline_tag(element: Tag) -> bool:
    return element.name not in POSITIONED_TAGS and element.name not in LEAF_TAGS and element.name != "div"


def _split_text(string: NavigableString, start: int, end: int) -> NavigableString:
    """Split ``string`` so that ``[start, end)`` becomes its own node; returns that node."""
    value = str(string)
    if start == 0 and end == len(value):
        return string
    inner = NavigableString(value[start:end])
    string.replace_with(inner)
    if start > 0:
        inner.insert_before(NavigableString(value[:start]))
    if end < len(value):
        inner.insert_after(NavigableString(value[end:]))
    return inner


def _ancestors(node) -> List[Tag]:
    chain = []
    parent = node.parent
    while parent is not None:
        chain.append(parent)
        parent = parent.parent
    return chain


def _common_parent(first, last) -> Optional[Tag]:
    if first is last:
        return first.parent
    last_ids = {id(ancestor) for ancestor in _ancestors(last)}
    for ancestor in _ancestors(first):
        if id(ancestor) in last_ids:
            return ancestor
    return None


def _child_under(node, parent: Tag):
    while node.parent is not None and node.parent is not parent:
        node = node.parent
    return node


def _siblings_between(first, last):
    node = first
    while node is not None:
        yield node
        if node is last:
            return
        node = node.next_sibling
