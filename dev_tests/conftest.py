"""Shared pytest fixtures for Copydesk tests."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def mock_env_vars():
    """Provide test environment variables."""
    env = {
        "OPENAI_API_KEY": "sk-test-openai-key-12345",
        "GOOGLE_API_KEY": "test-google-key-12345",
        "APP_HOST": "0.0.0.0",
        "APP_PORT": "8000",
    }
    with patch.dict(os.environ, env, clear=False):
        yield env


@pytest.fixture
def clean_env():
    """Provide clean environment without API keys."""
    keys_to_remove = [
        "OPENAI_API_KEY", "OPENAI_KEY", "GOOGLE_API_KEY", "GEMINI_KEY",
    ]
    with patch.dict(os.environ, {}, clear=False):
        for key in keys_to_remove:
            os.environ.pop(key, None)
        yield


# ============================================================================
# Document Fixtures
# ============================================================================

SHIPPING_HTML = "<p>Our shipping is very fast and reliable.</p>"

# "very fast" inside the paragraph above
VERY_FAST_RANGE = (17, 26)

ARTICLE_HTML = (
    "<h1>Summer Sale</h1>"
    "<p>Everything <strong>must</strong> go this week.</p>"
    "<ul><li><p>Free returns</p></li><li><p>Fast delivery</p></li></ul>"
    '<img src="https://cdn.example.com/hero.png" alt="Beach">'
    "<p>See you soon.</p>"
)


@pytest.fixture
def shipping_html():
    return SHIPPING_HTML


@pytest.fixture
def article_html():
    return ARTICLE_HTML


# ============================================================================
# Generation Fixtures
# ============================================================================

async def _stream(chunks):
    for chunk in chunks:
        yield chunk


@pytest.fixture
def mock_generation():
    """
    Stand-in for the generation capability used by the editor
    (GenerationService in-process, AsyncCopydeskClient over HTTP).
    """
    from models import (
        GenerateImagesResponse,
        KeywordSuggestion,
        RegenerateImageResponse,
        SeoMetadata,
        SuggestKeywordsResponse,
    )

    generation = MagicMock()
    generation.edit_selection = AsyncMock(return_value="lightning-fast, often same-day")
    generation.regenerate_image = AsyncMock(
        return_value=RegenerateImageResponse(image_url="data:image/png;base64,AAAA", alt="New alt")
    )
    generation.generate_images = AsyncMock(return_value=GenerateImagesResponse(images=[]))
    generation.translate = AsyncMock(return_value="<p>Translated</p>")
    generation.generate_content = MagicMock(side_effect=lambda request: _stream(["<p>Generated</p>"]))
    generation.continue_writing = MagicMock(side_effect=lambda request: _stream(["<p>More</p>"]))
    generation.generate_seo = AsyncMock(
        return_value=SeoMetadata(seo_title="Fast shipping", seo_description="Same-day delivery across Slovakia.")
    )
    generation.suggest_keywords = AsyncMock(
        return_value=SuggestKeywordsResponse(
            suggestions=[KeywordSuggestion(keyword="matrac", estimated_volume=9900, intent="transactional")]
        )
    )
    return generation


@pytest.fixture
def stream_of():
    """Factory for async chunk iterators."""
    return _stream


@pytest.fixture
def mock_ai_service():
    """Mock AIService for GenerationService tests."""
    from ai_service import GeneratedImage

    service = MagicMock()
    service.generate_content = AsyncMock(return_value="<p>Rewritten</p>")
    service.generate_image = AsyncMock(return_value=GeneratedImage(b"\x89PNG", "image/png"))

    async def _stream_content(*args, **kwargs):
        for chunk in ["<h1>Title</h1>", "<p>Body</p>"]:
            yield chunk

    service.generate_content_stream = MagicMock(side_effect=_stream_content)
    return service
