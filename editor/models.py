"""
Editor Models - Value types shared by the editing core.

Core Types:
- Range: ordered pair of document positions
- ImageAttributes: source/alt pair of an embedded image
- SelectionSnapshot: immutable capture of a selected range
- HighlightHandle: receipt for an applied highlight overlay
- SpliceStrategy / SpliceResult: outcome of a splice-back
- PanelState / SubmitStatus / PanelOutcome: inline panel lifecycle
- AssemblyResult / PlaceholderFillResult: streaming generation outcome
- SaveStatus / ViewMode: editor session state
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Range:
    """A span of the document position space, ``start <= end``."""

    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid range ({self.start}, {self.end})")

    @classmethod
    def between(cls, anchor: int, head: int) -> "Range":
        """Build a range from two positions in either order."""
        return cls(min(anchor, head), max(anchor, head))

    @classmethod
    def caret(cls, position: int) -> "Range":
        return cls(position, position)

    @property
    def empty(self) -> bool:
        return self.start == self.end

    @property
    def size(self) -> int:
        return self.end - self.start

    def clamp(self, limit: int) -> "Range":
        return Range(min(self.start, limit), min(self.end, limit))

    def to_dict(self) -> Dict[str, int]:
        return {"from": self.start, "to": self.end}


@dataclass(frozen=True)
class ImageAttributes:
    source: Optional[str]
    alt_text: Optional[str] = None


@dataclass(frozen=True)
class SelectionSnapshot:
    """
    Immutable capture of a non-empty selection.

    Attributes:
        range: Positions the snapshot was taken from (advisory once the document changes)
        is_image: True when the range holds image content and no text
        image: Attributes of the first image inside the range, if any
        selected_markup: Serialized markup of the range
        selected_text: Plain text of the range, blocks separated by newlines
        context_before: Up to the configured window of text preceding the selection
        context_after: Up to the configured window of text following the selection
        document_version: Document version at capture time
    """

    range: Range
    is_image: bool
    image: Optional[ImageAttributes]
    selected_markup: str
    selected_text: str
    context_before: str = ""
    context_after: str = ""
    document_version: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range": self.range.to_dict(),
            "is_image": self.is_image,
            "image": (
                {"src": self.image.source, "alt": self.image.alt_text}
                if self.image else None
            ),
            "selected_html": self.selected_markup,
            "selected_text": self.selected_text,
            "context_before": self.context_before,
            "context_after": self.context_after,
        }


@dataclass(frozen=True)
class HighlightHandle:
    range: Range
    strategy: Optional[str]
    marker_count: int
    token: str

    @property
    def visible(self) -> bool:
        return self.marker_count > 0


class SpliceStrategy(str, Enum):
    """How a replacement fragment was put back into the document."""

    EXACT_MATCH = "exact_match"  # first verbatim occurrence in the serialized document
    STRUCTURAL = "structural"  # delete + insert against the captured range


@dataclass
class SpliceResult:
    strategy: SpliceStrategy
    content_before: str
    content_after: str
    markup_span: Optional[Tuple[int, int]] = None
    inserted_range: Optional[Range] = None
    execution_time_ms: float = 0.0

    @property
    def changed(self) -> bool:
        return self.content_before != self.content_after

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "changed": self.changed,
            "markup_span": list(self.markup_span) if self.markup_span else None,
            "inserted_range": self.inserted_range.to_dict() if self.inserted_range else None,
            "execution_time_ms": self.execution_time_ms,
        }


class PanelState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    SUBMITTING = "submitting"


class SubmitStatus(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"  # nothing sent: panel not open, busy, or blank instruction
    FAILED = "failed"
    STALE = "stale"  # result arrived after the panel was closed and was discarded


@dataclass
class PanelPosition:
    top: float
    left: float


@dataclass
class SelectionRect:
    """Viewport rectangle of the selected range as reported by the view."""

    top: float
    left: float
    width: float
    height: float = 0.0
    scroll_y: float = 0.0


@dataclass
class PanelOutcome:
    status: SubmitStatus
    error: Optional[str] = None
    splice: Optional[SpliceResult] = None
    epoch: int = 0

    @property
    def applied(self) -> bool:
        return self.status is SubmitStatus.APPLIED


@dataclass
class PlaceholderFillResult:
    markup: str
    found: int = 0
    resolved: int = 0

    @property
    def unresolved(self) -> int:
        return self.found - self.resolved


@dataclass
class AssemblyResult:
    markup: str
    chunk_count: int = 0
    completed: bool = False
    interrupted: bool = False
    cancelled: bool = False
    error: Optional[str] = None
    placeholders: Optional[PlaceholderFillResult] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "markup_length": len(self.markup),
            "chunk_count": self.chunk_count,
            "completed": self.completed,
            "interrupted": self.interrupted,
            "cancelled": self.cancelled,
            "error": self.error,
        }
        if self.placeholders is not None:
            data["placeholders"] = {
                "found": self.placeholders.found,
                "resolved": self.placeholders.resolved,
            }
        return data


@dataclass
class DocumentStats:
    words: int
    characters: int
    blocks: int = 0
    images: int = 0


class SaveStatus(str, Enum):
    SAVED = "saved"
    UNSAVED = "unsaved"
    SAVING = "saving"
    ERROR = "error"


class ViewMode(str, Enum):
    VISUAL = "visual"
    SOURCE = "html"  # raw markup editing
    SPLIT = "split"
