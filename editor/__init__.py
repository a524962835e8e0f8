"""
Editor Module - Rich-text document model with AI-assisted inline editing.

This module holds everything that runs on the editing side:

1. **Document model**: a tree of blocks and inline runs with integer positions
2. **Selection capture**: markup, text and context for a range, frozen at open time
3. **Highlight overlay**: a visual-only marker over the captured range
4. **Splice-back**: putting generated markup back where the selection was
5. **Streaming assembly**: live preview of whole-document generation plus
   image placeholder fill
6. **Session**: one document with its panel, toolbar commands and autosave

Usage:
    from editor import EditorSession, Range

    session = EditorSession("<p>Our shipping is very fast and reliable.</p>", generation=service)
    session.select(Range(17, 26))
    session.panel.open()
    outcome = await session.panel.submit("make this more specific")
    print(session.markup)
"""

from .document import Document, ResolvedPosition
from .errors import EditorError, GenerationError, InvalidRangeError, SpliceError
from .highlight import (
    AtomicWrapStrategy,
    HighlightOverlay,
    HighlightStrategy,
    PerNodeWrapStrategy,
    RenderedView,
    strip_markers,
)
from .markup import ParsedFragment, parse_document, parse_fragment, serialize_nodes
from .models import (
    AssemblyResult,
    DocumentStats,
    HighlightHandle,
    ImageAttributes,
    PanelOutcome,
    PanelPosition,
    PanelState,
    PlaceholderFillResult,
    Range,
    SaveStatus,
    SelectionRect,
    SelectionSnapshot,
    SpliceResult,
    SpliceStrategy,
    SubmitStatus,
    ViewMode,
)
from .nodes import Mark, MarkKind, Node, NodeKind
from .panel import PanelController
from .placeholders import find_placeholders, substitute_placeholders
from .selection import capture
from .session import EditorSession
from .splice import SpliceBackEngine
from .streaming import StreamBuffer, StreamingContentAssembler

__all__ = [
    # Document model
    "Document",
    "ResolvedPosition",
    "Node",
    "NodeKind",
    "Mark",
    "MarkKind",
    "ParsedFragment",
    "parse_document",
    "parse_fragment",
    "serialize_nodes",
    # Selection and highlight
    "Range",
    "capture",
    "SelectionSnapshot",
    "ImageAttributes",
    "RenderedView",
    "HighlightOverlay",
    "HighlightStrategy",
    "AtomicWrapStrategy",
    "PerNodeWrapStrategy",
    "HighlightHandle",
    "strip_markers",
    # Splice and panel
    "SpliceBackEngine",
    "SpliceResult",
    "SpliceStrategy",
    "PanelController",
    "PanelState",
    "PanelOutcome",
    "PanelPosition",
    "SelectionRect",
    "SubmitStatus",
    # Streaming
    "StreamBuffer",
    "StreamingContentAssembler",
    "AssemblyResult",
    "PlaceholderFillResult",
    "find_placeholders",
    "substitute_placeholders",
    # Session
    "EditorSession",
    "DocumentStats",
    "SaveStatus",
    "ViewMode",
    # Errors
    "EditorError",
    "InvalidRangeError",
    "SpliceError",
    "GenerationError",
]
