"""
Splice-Back Engine - Put an edited fragment back where it came from.

1. Exact match: serialize the whole document, replace the first verbatim
   occurrence of the captured markup that lies outside any tag, reload the
   document from the result.
2. Structural fallback: when the captured markup is no longer present,
   delete the captured range and insert the replacement in one step.

Either path changes the document at most once; a failure leaves it untouched.
"""

import logging
import re
import time
from typing import Optional

from .document import Document
from .errors import InvalidRangeError, SpliceError
from .markup import parse_fragment
from .models import Range, SpliceResult, SpliceStrategy

logger = logging.getLogger(__name__)


class SpliceBackEngine:
    """Applies replacement markup for a previously captured selection."""

    def apply(
        self,
        document: Document,
        original_markup: str,
        replacement_markup: str,
        fallback_range: Range,
    ) -> SpliceResult:
        started = time.perf_counter()
        before = document.serialize()

        span = self.locate(before, original_markup)
        if span is not None:
            start, end = span
            edited = before[:start] + replacement_markup + before[end:]
            document.set_whole_document(edited)
            result = SpliceResult(
                strategy=SpliceStrategy.EXACT_MATCH,
                content_before=before,
                content_after=document.serialize(),
                markup_span=span,
            )
        else:
            inserted = self._structural(document, replacement_markup, fallback_range)
            result = SpliceResult(
                strategy=SpliceStrategy.STRUCTURAL,
                content_before=before,
                content_after=document.serialize(),
                inserted_range=inserted,
            )

        result.execution_time_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Splice applied via %s in %.2fms (changed=%s)",
            result.strategy.value,
            result.execution_time_ms,
            result.changed,
        )
        return result

    @staticmethod
    def locate(markup: str, original_markup: str) -> Optional[tuple]:
        """
        Span of the first occurrence of ``original_markup`` that starts and
        ends outside any tag, or None.
        """
        if not original_markup:
            return None
        tags = [match.span() for match in _TAG_RE.finditer(markup)]
        index = markup.find(original_markup)
        while index >= 0:
            end = index + len(original_markup)
            if not _inside_tag(tags, index) and not _inside_tag(tags, end):
                return index, end
            logger.debug("Skipping match at %d, it falls inside a tag", index)
            index = markup.find(original_markup, index + 1)
        return None

    def _structural(self, document: Document, replacement_markup: str, fallback_range: Range) -> Range:
        logger.debug("Captured markup not found, replacing range %s structurally", fallback_range.to_dict())
        try:
            fragment = parse_fragment(replacement_markup)
            return document.replace(fallback_range, fragment)
        except InvalidRangeError as exc:
            raise SpliceError(
                f"Fallback range no longer fits the document: {exc}",
                {"range": fallback_range.to_dict(), "document_size": document.size},
            ) from exc
        except ValueError as exc:
            raise SpliceError(f"Replacement markup could not be applied: {exc}") from exc


# Serialized attribute values are always double-quoted with '"' escaped
_TAG_RE = re.compile(r'<(?:[^>"]|"[^"]*")*>')


def _inside_tag(tags, pos: int) -> bool:
    return any(start < pos < end for start, end in tags)
