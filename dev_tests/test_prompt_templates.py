"""
Tests for core/prompt_templates.py - prompt builders.
"""

from unittest.mock import patch

from config import config
from core.prompt_templates import (
    IMAGE_NEGATIVE_RULE,
    build_brand_context,
    build_document_prompt,
    build_image_edit_prompt,
    build_image_rule,
    build_keyword_suggestions_prompt,
    build_placeholder_image_prompt,
    build_seo_metadata_prompt,
    build_translation_prompt,
    markup_to_plain_text,
)


class TestBrandContext:
    """Tests for build_brand_context()."""

    def test_missing_context(self):
        assert build_brand_context(None) == "No brand context set"

    def test_structured_fields_are_appended(self):
        """
        Given: Free-form context plus products and conditions
        When: The context is built
        Then: Only the filled fields are appended, each labelled
        """
        context = build_brand_context("Family bakery", products="Bread", conditions="Free returns")

        assert context == "Family bakery\n\nProducts / Services: Bread\n\nVOP (Conditions): Free returns"

    def test_long_context_is_truncated(self):
        with patch.object(config.GENERATION, "brand_context_limit", 10):
            context = build_brand_context("x" * 50)
        assert context == "x" * 10 + config.GENERATION.brand_context_notice


class TestDocumentPrompt:
    def test_blog_prompt(self):
        prompt = build_document_prompt(
            project_type="blog",
            topic="Bread",
            keywords=["sourdough"],
            language="cs",
            brand_name="Acme",
            brand_context="Family bakery",
            template_html="<article><h1>Title</h1></article>",
            image_count=2,
            title="Our bread",
        )

        assert "Write in Czech" in prompt.system
        assert build_image_rule(2) in prompt.system
        assert prompt.user.startswith("Title: Our bread\nTopic: Bread")
        assert "<template>\n<article><h1>Title</h1></article>\n</template>" in prompt.user
        assert prompt.user.endswith("Write the complete blog post now as clean HTML.")

    def test_image_rule_shows_placeholder_shape(self):
        assert 'data-ai-generate="true"' in build_image_rule(4)
        assert "exactly 4 image placeholders" in build_image_rule(4)


class TestOtherPrompts:
    def test_translation_without_brand_names(self):
        prompt = build_translation_prompt("<p>Ahoj</p>", "sk", "hu")
        assert "from Slovak to Hungarian" in prompt.system
        assert "- Brand names must NOT be translated" in prompt.system
        assert prompt.user == "<p>Ahoj</p>"

    def test_image_edit_prompt(self):
        assert build_image_edit_prompt("a dog") == "a dog. High quality, photorealistic. No text or watermarks."

    def test_placeholder_prompt_uses_default_style(self):
        prompt = build_placeholder_image_prompt("kitchen", "Chef", None, "B" * 300, None)

        assert prompt.startswith("Image for the brand. " + "B" * 200 + ". Scene: kitchen.")
        assert f"Style: {config.GENERATION.default_image_style}." in prompt
        assert prompt.endswith(IMAGE_NEGATIVE_RULE)


class TestSeoAndKeywordPrompts:
    def test_seo_prompt_uses_plain_text_preview(self):
        """
        Given: Long markup content
        When: The SEO prompt is built
        Then: Tags are dropped and the preview is cut to 1500 characters
        """
        prompt = build_seo_metadata_prompt("<p>" + "word " * 600 + "</p>", "Title", ["a", "b"], "hu")

        assert "Write in Hungarian" in prompt.system
        assert "Target keywords: a, b" in prompt.user
        assert "Brand:" not in prompt.user
        preview = prompt.user.split("Content (first 1500 chars):\n")[1].split("\n\nOutput as JSON")[0]
        assert len(preview) == 1500
        assert "<p>" not in preview

    def test_markup_to_plain_text(self):
        assert markup_to_plain_text("<h2>Hi</h2>\n<p>there  <em>you</em></p>") == "Hi there you"
        assert markup_to_plain_text("<p>abcdef</p>", 3) == "abc"

    def test_keyword_prompt(self):
        prompt = build_keyword_suggestions_prompt("Acme", "Beds", "Hungary", "hu", categories="pillows")

        assert "specializing in the Hungary market" in prompt.system
        assert prompt.user.startswith("Suggest 20 keyword ideas for the Acme brand.")
        assert "Product categories: pillows" in prompt.user
        assert "- The keyword in Hungarian" in prompt.user

    def test_keyword_prompt_count_from_settings(self):
        with patch.object(config.GENERATION, "keyword_suggestion_count", 5):
            prompt = build_keyword_suggestions_prompt(None, "Beds", "Slovakia", "sk")
        assert prompt.user.startswith("Suggest 5 keyword ideas for this brand.")
        assert "Product categories" not in prompt.user
