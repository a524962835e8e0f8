"""
Selection capture for the AI edit panel.

A snapshot is taken once, when the panel opens, and never refreshed: the
panel later splices against exactly the markup that was captured here.
"""

import logging
from typing import Optional

from config import config

from .document import Document
from .models import ImageAttributes, Range, SelectionSnapshot

logger = logging.getLogger(__name__)


def capture(document: Document, range: Range, context_window: Optional[int] = None) -> Optional[SelectionSnapshot]:
    """
    Snapshot the selected range of ``document``.

    Returns None for an empty range. A range is treated as an image
    selection only when it holds an image and no visible text; mixed
    ranges are edited as text.
    """
    if range.empty:
        return None
    document.check_range(range)
    if context_window is None:
        context_window = config.EDITOR.context_window

    selected_markup = document.serialize(range)
    selected_text = document.text_between(range.start, range.end, "\n")

    images = document.images_between(range.start, range.end)
    image: Optional[ImageAttributes] = images[0][1] if images else None
    is_image = image is not None and not selected_text.strip()

    full_text = document.text_between(0, document.size, "\n")
    context_before, context_after = _surrounding_context(full_text, selected_text, context_window)

    snapshot = SelectionSnapshot(
        range=range,
        is_image=is_image,
        image=image if is_image else None,
        selected_markup=selected_markup,
        selected_text=selected_text,
        context_before=context_before,
        context_after=context_after,
        document_version=document.version,
    )
    logger.debug(
        "Captured selection %s (image=%s, %d chars of markup)",
        range.to_dict(),
        is_image,
        len(selected_markup),
    )
    return snapshot


def _surrounding_context(full_text: str, selected_text: str, window: int):
    """Text around the first occurrence of the selection; empty when it cannot be located."""
    if not selected_text:
        return "", ""
    index = full_text.find(selected_text)
    if index < 0:
        return "", ""
    before = full_text[max(0, index - window):index]
    after = full_text[index + len(selected_text):index + len(selected_text) + window]
    return before, after
