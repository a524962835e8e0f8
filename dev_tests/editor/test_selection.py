"""
Tests for editor/selection.py - selection capture.
"""

from unittest.mock import patch

from config import config
from editor.document import Document
from editor.models import Range
from editor.selection import capture

IMAGE_DOC = '<p>Intro</p><img src="a.png" alt="A"><p>Outro</p>'


class TestCapture:
    """Tests for capture()."""

    def test_empty_range_captures_nothing(self, shipping_html):
        """
        Given: A caret (empty range)
        When: capture() is called
        Then: It returns None
        """
        document = Document.from_markup(shipping_html)
        assert capture(document, Range.caret(17)) is None

    def test_text_selection(self, shipping_html):
        """
        Given: The "very fast" range
        When: Captured
        Then: Markup, text and surrounding context are filled in
        """
        document = Document.from_markup(shipping_html)
        snapshot = capture(document, Range(17, 26))

        assert snapshot.is_image is False
        assert snapshot.image is None
        assert snapshot.selected_markup == "very fast"
        assert snapshot.selected_text == "very fast"
        assert snapshot.context_before == "Our shipping is "
        assert snapshot.context_after == " and reliable."

    def test_markup_matches_serialize(self):
        """
        Given: A range crossing two paragraphs
        When: Captured
        Then: selected_markup equals document.serialize(range)
        """
        document = Document.from_markup("<p>Hello</p><p>World</p>")
        snapshot = capture(document, Range(3, 10))
        assert snapshot.selected_markup == document.serialize(Range(3, 10))
        assert snapshot.selected_text == "llo\nWo"

    def test_cross_block_context(self):
        """
        Given: A selection spanning a block boundary
        When: Captured
        Then: Context is still found around it
        """
        document = Document.from_markup("<p>Hello</p><p>World</p>")
        snapshot = capture(document, Range(3, 10))
        assert snapshot.context_before == "He"
        assert snapshot.context_after == "rld"

    def test_context_is_windowed(self):
        """
        Given: 300 characters on each side of the selection
        When: Captured with a 200-character window
        Then: Each context is exactly 200 characters
        """
        document = Document.from_markup("<p>" + "a" * 300 + "TARGET" + "b" * 300 + "</p>")
        snapshot = capture(document, Range(301, 307), context_window=200)
        assert snapshot.selected_text == "TARGET"
        assert snapshot.context_before == "a" * 200
        assert snapshot.context_after == "b" * 200

    def test_image_selection(self):
        """
        Given: A range holding only an image
        When: Captured
        Then: It is an image selection carrying the image's src and alt
        """
        document = Document.from_markup(IMAGE_DOC)
        snapshot = capture(document, Range(7, 8))

        assert snapshot.is_image is True
        assert snapshot.image.source == "a.png"
        assert snapshot.image.alt_text == "A"
        assert snapshot.selected_markup == '<img src="a.png" alt="A">'

    def test_mixed_selection_is_text(self):
        """
        Given: A range holding text and an image
        When: Captured
        Then: It is treated as a text selection
        """
        document = Document.from_markup(IMAGE_DOC)
        snapshot = capture(document, Range(3, 10))
        assert snapshot.is_image is False
        assert snapshot.image is None

    def test_snapshot_records_document_version(self, shipping_html):
        document = Document.from_markup(shipping_html)
        document.set_whole_document(shipping_html)
        snapshot = capture(document, Range(17, 26))
        assert snapshot.document_version == 1
        assert snapshot.to_dict()["range"] == {"from": 17, "to": 26}

    def test_first_of_several_images_wins(self):
        """
        Given: A range holding two adjacent images
        When: Captured
        Then: The first image in document order is the one recorded
        """
        document = Document.from_markup(
            '<p>Intro</p><img src="a.png" alt="A"><img src="b.png" alt="B"><p>Outro</p>'
        )
        snapshot = capture(document, Range(7, 9))

        assert snapshot.is_image is True
        assert snapshot.image.source == "a.png"
        assert snapshot.image.alt_text == "A"

    def test_context_empty_when_text_not_found(self, shipping_html):
        """
        Given: Selected text that does not appear in the flattened document text
        When: Captured
        Then: Both context windows are empty strings
        """
        document = Document.from_markup(shipping_html)
        full_text = document.text_content()

        with patch.object(document, "text_between", side_effect=["no such text", full_text]):
            snapshot = capture(document, Range(17, 26))

        assert snapshot.selected_text == "no such text"
        assert snapshot.context_before == ""
        assert snapshot.context_after == ""

    def test_default_window_comes_from_settings(self):
        document = Document.from_markup("<p>" + "a" * 100 + "TARGET" + "</p>")
        with patch.object(config.EDITOR, "context_window", 10):
            snapshot = capture(document, Range(101, 107))
        assert snapshot.context_before == "a" * 10
