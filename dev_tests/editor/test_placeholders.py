"""
Tests for editor/placeholders.py - placeholder scanning and substitution.
"""

from editor.placeholders import (
    ResolvedImage,
    find_placeholders,
    image_tag,
    images_from_payload,
    substitute_placeholders,
)

PLACEHOLDER = '<img data-ai-generate="true" data-section="kitchen" alt="Chef" />'


class TestImageTag:
    """Tests for image_tag()."""

    def test_payload_alt_is_escaped(self):
        """
        Given: An alt text from a network payload holding a quote and markup
        When: The image tag is built
        Then: The alt cannot break out of its attribute
        """
        tag = image_tag("data:image/png;base64,AAAA", 'Say "hi"><script>x</script>')

        assert tag == (
            '<img src="data:image/png;base64,AAAA" '
            'alt="Say &quot;hi&quot;><script>x</script>" />'
        )

    def test_encoded_alt_is_not_double_escaped(self):
        assert image_tag("a.png", "Salt &amp; pepper") == '<img src="a.png" alt="Salt &amp; pepper" />'


class TestSubstitution:
    def test_payload_records_are_substituted(self):
        """
        Given: Images decoded from a generate-images payload
        When: They are substituted into the markup
        Then: Each placeholder becomes an image with an escaped alt
        """
        markup = "<p>Hi</p>" + PLACEHOLDER
        images = images_from_payload(
            [
                {"placeholder": PLACEHOLDER, "imageUrl": "data:image/png;base64,AAAA", "alt": 'Chef "Jo"'},
                {"placeholder": "<img missing>", "imageUrl": "x.png", "alt": "Gone"},
                {"placeholder": PLACEHOLDER, "imageUrl": None},
            ]
        )

        result, replaced = substitute_placeholders(markup, images)

        assert len(images) == 2
        assert replaced == 1
        assert result == '<p>Hi</p><img src="data:image/png;base64,AAAA" alt="Chef &quot;Jo&quot;" />'

    def test_find_placeholders_reads_section_and_alt(self):
        found = find_placeholders("<p>x</p>" + PLACEHOLDER)
        assert [(p.section, p.alt) for p in found] == [("kitchen", "Chef")]
        assert found[0].markup == PLACEHOLDER

    def test_image_without_url_is_skipped(self):
        result, replaced = substitute_placeholders(PLACEHOLDER, [ResolvedImage(PLACEHOLDER, "", "Chef")])
        assert (result, replaced) == (PLACEHOLDER, 0)
