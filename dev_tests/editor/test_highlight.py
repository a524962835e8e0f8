"""
Tests for editor/highlight.py - visual highlight overlay.

The overlay only touches the rendered view: after removal the view must
serialize exactly as before, and the document must never change.
"""

from unittest.mock import patch

from editor.document import Document
from editor.highlight import (
    HIGHLIGHT_CLASS,
    AtomicWrapStrategy,
    HighlightOverlay,
    PerNodeWrapStrategy,
    RenderedView,
)
from editor.models import Range

MARKED_DOC = "<p>Everything <strong>must</strong> go</p>"


def make_overlay(markup):
    document = Document.from_markup(markup)
    view = RenderedView(document)
    return document, view, HighlightOverlay(view)


class TestRenderedView:
    """Tests for RenderedView."""

    def test_segments_for_inline_range(self, shipping_html):
        _, view, _ = make_overlay(shipping_html)
        segments = view.segments(Range(17, 26))
        assert len(segments) == 1
        assert str(segments[0].node)[segments[0].start:segments[0].end] == "very fast"

    def test_spans_match_document_positions(self):
        """
        Given: Two paragraphs
        When: Element spans are measured
        Then: Each paragraph covers its document positions
        """
        _, view, _ = make_overlay("<p>Hello</p><p>World</p>")
        spans = view.spans()
        paragraphs = view.root.find_all("p")
        assert spans[id(paragraphs[0])] == (0, 7)
        assert spans[id(paragraphs[1])] == (7, 14)


class TestHighlightOverlay:
    """Tests for HighlightOverlay apply/remove."""

    def test_single_block_uses_one_marker(self, shipping_html):
        """
        Given: A range inside one paragraph
        When: The highlight is applied
        Then: One marker wraps exactly the selected text
        """
        document, view, overlay = make_overlay(shipping_html)

        handle = overlay.apply(Range(17, 26))

        assert handle.strategy == "atomic"
        assert handle.marker_count == 1
        markers = view.markers()
        assert [marker.get_text() for marker in markers] == ["very fast"]
        assert HIGHLIGHT_CLASS in markers[0]["class"]
        assert document.serialize() == shipping_html

    def test_remove_restores_view_exactly(self, shipping_html):
        """
        Given: An applied highlight
        When: It is removed
        Then: The view serializes byte-identically to before
        """
        _, view, overlay = make_overlay(shipping_html)
        before = view.html

        handle = overlay.apply(Range(17, 26))
        assert view.html != before
        overlay.remove(handle)

        assert view.html == before
        assert view.markers() == []

    def test_multi_block_uses_marker_per_node(self):
        """
        Given: A range crossing two paragraphs
        When: The highlight is applied
        Then: Each text run gets its own marker and removal restores the view
        """
        _, view, overlay = make_overlay("<p>Hello</p><p>World</p>")
        before = view.html

        handle = overlay.apply(Range(3, 10))

        assert handle.strategy == "per_node"
        assert [marker.get_text() for marker in view.markers()] == ["llo", "Wo"]
        overlay.remove(handle)
        assert view.html == before

    def test_whole_inline_element_inside_range_stays_atomic(self):
        """
        Given: A range that fully contains a bold element
        When: The highlight is applied
        Then: One marker wraps text and the bold element together
        """
        _, view, overlay = make_overlay(MARKED_DOC)
        before = view.html

        handle = overlay.apply(Range(6, 19))

        assert handle.strategy == "atomic"
        assert view.markers()[0].get_text() == "thing must go"
        overlay.remove(handle)
        assert view.html == before

    def test_partially_covered_inline_element_falls_back(self):
        """
        Given: A range ending inside a bold element
        When: The highlight is applied
        Then: The per-node strategy marks each piece separately
        """
        _, view, overlay = make_overlay(MARKED_DOC)
        before = view.html

        handle = overlay.apply(Range(2, 14))

        assert handle.strategy == "per_node"
        assert [marker.get_text() for marker in view.markers()] == ["verything ", "mu"]
        overlay.remove(handle)
        assert view.html == before

    def test_failing_strategy_falls_through(self, shipping_html):
        """
        Given: The atomic strategy raises while wrapping
        When: The highlight is applied
        Then: The per-node strategy is used instead and no error escapes
        """
        _, view, overlay = make_overlay(shipping_html)
        before = view.html

        with patch.object(AtomicWrapStrategy, "wrap", side_effect=RuntimeError("boom")):
            handle = overlay.apply(Range(17, 26))

        assert handle.strategy == "per_node"
        assert handle.visible
        overlay.remove(handle)
        assert view.html == before

    def test_all_strategies_failing_degrades_to_no_highlight(self, shipping_html):
        """
        Given: Both wrap strategies raise
        When: The highlight is applied
        Then: No error escapes, nothing is visible and the view is untouched
        """
        document, view, overlay = make_overlay(shipping_html)
        before = view.html

        with patch.object(AtomicWrapStrategy, "wrap", side_effect=RuntimeError("boom")), \
             patch.object(PerNodeWrapStrategy, "wrap", side_effect=RuntimeError("boom")):
            handle = overlay.apply(Range(17, 26))

        assert handle.visible is False
        assert handle.strategy is None
        assert view.markers() == []
        assert view.html == before
        assert document.serialize() == shipping_html

    def test_applying_again_replaces_previous_highlight(self, shipping_html):
        _, view, overlay = make_overlay(shipping_html)
        overlay.apply(Range(1, 4))
        overlay.apply(Range(17, 26))
        assert [marker.get_text() for marker in view.markers()] == ["very fast"]

    def test_image_is_marked(self):
        _, view, overlay = make_overlay('<p>Intro</p><img src="a.png" alt="A"><p>Outro</p>')
        before = view.html

        handle = overlay.apply(Range(7, 8))

        assert handle.visible
        assert view.markers()[0].find("img") is not None
        overlay.remove(handle)
        assert view.html == before
