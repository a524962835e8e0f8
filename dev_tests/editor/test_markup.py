"""
Tests for editor/nodes.py and editor/markup.py - node tree and markup codec.

Tests cover:
- Node sizes in the position space
- Parsing the editor schema (wrappers, headings, lists, marks, whitespace)
- Fragment parsing and open depths
- Serialization and escaping
- Trailing partial tag removal for streamed markup
"""

import pytest

from editor.markup import parse_document, parse_fragment, serialize_nodes, strip_partial_tag
from editor.nodes import (
    BOLD,
    NodeKind,
    bullet_list,
    hard_break,
    image,
    list_item,
    normalize_inline,
    paragraph,
    text,
)


def roundtrip(markup: str) -> str:
    return serialize_nodes(parse_document(markup))


class TestNodeSizes:
    """Tests for the flattened position space."""

    def test_text_counts_characters(self):
        """
        Given: A text node "abc"
        When: Its size is read
        Then: It is 3
        """
        assert text("abc").node_size == 3

    def test_paragraph_adds_open_and_close_tokens(self):
        """
        Given: A paragraph holding "abc"
        When: Its size is read
        Then: It is the text plus two boundary tokens
        """
        assert paragraph(text("abc")).node_size == 5

    def test_leaves_count_one(self):
        """
        Given: An image and a hard break
        When: Their sizes are read
        Then: Each counts as one position
        """
        assert image("a.png").node_size == 1
        assert hard_break().node_size == 1

    def test_nested_list_size(self):
        """
        Given: A bullet list with one item holding "ab"
        When: Its size is read
        Then: Every container level adds two tokens
        """
        assert bullet_list(list_item(paragraph(text("ab")))).node_size == 8

    def test_normalize_inline_merges_runs_with_same_marks(self):
        """
        Given: Adjacent text runs, two plain and one bold
        When: normalize_inline is applied
        Then: The plain runs merge and the bold run stays separate
        """
        merged = normalize_inline([text("a"), text("b"), text("c", [BOLD]), text("")])
        assert [node.text for node in merged] == ["ab", "c"]


class TestParseDocument:
    """Tests for parse_document()."""

    def test_simple_paragraph_roundtrip(self):
        """
        Given: A paragraph with a bold run
        When: Parsed and serialized
        Then: The markup is unchanged
        """
        markup = "<p>Hello <strong>world</strong></p>"
        assert roundtrip(markup) == markup

    def test_wrappers_are_unwrapped(self):
        """
        Given: Blocks inside an article element
        When: Parsed
        Then: The article wrapper disappears
        """
        assert roundtrip("<article><h1>T</h1><p>B</p></article>") == "<h1>T</h1><p>B</p>"

    def test_deep_headings_collapse_to_level_three(self):
        """
        Given: An h4
        When: Parsed
        Then: It becomes an h3
        """
        assert roundtrip("<h4>Deep</h4>") == "<h3>Deep</h3>"

    def test_loose_text_becomes_paragraph(self):
        """
        Given: Bare text
        When: Parsed
        Then: It is wrapped in a paragraph
        """
        assert roundtrip("Hello") == "<p>Hello</p>"

    def test_empty_markup_gives_one_empty_paragraph(self):
        """
        Given: Empty markup
        When: Parsed
        Then: The document holds a single empty paragraph
        """
        blocks = parse_document("")
        assert len(blocks) == 1
        assert blocks[0].kind is NodeKind.PARAGRAPH

    def test_whitespace_collapses(self):
        """
        Given: A paragraph with runs of whitespace and newlines
        When: Parsed
        Then: Whitespace collapses to single spaces and the edges are trimmed
        """
        assert roundtrip("<p>  a \n  b </p>") == "<p>a b</p>"

    def test_b_and_i_become_strong_and_em(self):
        """
        Given: b and i elements
        When: Parsed and serialized
        Then: They come out as strong and em
        """
        assert roundtrip("<p><b>x</b> <i>y</i></p>") == "<p><strong>x</strong> <em>y</em></p>"

    def test_list_items_get_paragraphs(self):
        """
        Given: A list whose items hold bare text
        When: Parsed
        Then: Each item holds a paragraph
        """
        assert roundtrip("<ul><li>a</li><li>b</li></ul>") == "<ul><li><p>a</p></li><li><p>b</p></li></ul>"

    def test_ordered_list_keeps_start(self):
        """
        Given: An ordered list starting at 3
        When: Parsed
        Then: The start attribute is kept
        """
        assert roundtrip('<ol start="3"><li>a</li></ol>') == '<ol start="3"><li><p>a</p></li></ol>'

    def test_image_attributes(self):
        """
        Given: An image with src and alt
        When: Parsed
        Then: It serializes with the same attributes
        """
        assert roundtrip('<img src="a.png" alt="A">') == '<img src="a.png" alt="A">'

    def test_link_mark_keeps_attributes(self):
        """
        Given: A link with a target
        When: Parsed
        Then: href and target survive
        """
        markup = '<p><a href="https://x.com" target="_blank">x</a></p>'
        assert roundtrip(markup) == markup

    def test_text_is_escaped(self):
        """
        Given: A paragraph holding an escaped ampersand
        When: Parsed and serialized
        Then: The ampersand is escaped again
        """
        assert roundtrip("<p>a &amp; b</p>") == "<p>a &amp; b</p>"

    def test_scripts_are_dropped(self):
        """
        Given: A script element between paragraphs
        When: Parsed
        Then: The script is gone
        """
        assert roundtrip("<p>a</p><script>alert(1)</script><p>b</p>") == "<p>a</p><p>b</p>"


class TestParseFragment:
    """Tests for parse_fragment()."""

    def test_inline_fragment_is_open_paragraph(self):
        """
        Given: Inline-only markup
        When: Parsed as a fragment
        Then: It is one paragraph open on both sides
        """
        fragment = parse_fragment("<strong>x</strong> y")
        assert fragment.inline_only is True
        assert (fragment.open_start, fragment.open_end) == (1, 1)
        assert fragment.nodes[0].kind is NodeKind.PARAGRAPH

    def test_block_fragment_open_depths(self):
        """
        Given: Two paragraphs
        When: Parsed as a fragment
        Then: Both edges are open one level
        """
        fragment = parse_fragment("<p>a</p><p>b</p>")
        assert fragment.inline_only is False
        assert (fragment.open_start, fragment.open_end) == (1, 1)

    def test_list_item_fragment_is_open_to_the_paragraph(self):
        """
        Given: Bare list items
        When: Parsed as a fragment
        Then: They are gathered into a list, open down to the paragraph
        """
        fragment = parse_fragment("<li><p>a</p></li>")
        assert fragment.nodes[0].kind is NodeKind.BULLET_LIST
        assert fragment.open_start == 3

    def test_empty_fragment(self):
        """
        Given: Empty markup
        When: Parsed as a fragment
        Then: It has no nodes
        """
        assert parse_fragment("").nodes == ()


class TestStripPartialTag:
    """Tests for strip_partial_tag()."""

    @pytest.mark.parametrize(
        "markup,expected",
        [
            ("<p>Hi</p><p cla", "<p>Hi</p>"),
            ("<p>Hi</p><", "<p>Hi</p>"),
            ("<p>Hi", "<p>Hi"),
            ("<p>Hi</p>", "<p>Hi</p>"),
        ],
    )
    def test_trailing_partial_tag(self, markup, expected):
        assert strip_partial_tag(markup) == expected
