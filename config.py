"""
Configuration for Copydesk
==========================

Central settings for the editing core, the generation service and the HTTP
layer. Values come from defaults below, overridden by environment variables
(a local .env file is read first). Invalid numeric overrides are ignored.
"""

import os
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()


DEFAULT_TEMPLATE_HTML = "<article><h1>Title</h1><p>Content here</p></article>"

DEFAULT_IMAGE_STYLE = "Warm lifestyle photography. Natural setting, soft lighting, cozy atmosphere."


class EditorSettings(BaseModel):
    """Editing core behaviour: selection context, highlight, panel and autosave."""

    context_window: int = Field(
        default=200,
        ge=0,
        description="Characters of plain text captured before and after a selection",
    )
    highlight_class: str = Field(
        default="ai-edit-highlight",
        description="CSS class of highlight markers in the rendered view",
    )
    highlight_attribute: str = Field(
        default="data-ai-highlight",
        description="Attribute that identifies highlight markers for removal",
    )
    panel_width: int = Field(
        default=320,
        gt=0,
        description="Width of the inline command panel in pixels",
    )
    panel_min_left: int = Field(
        default=16,
        ge=0,
        description="Minimum distance of the panel from the left viewport edge",
    )
    panel_vertical_offset: int = Field(
        default=10,
        description="Pixels the panel is lifted above the selection",
    )
    autosave_delay_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Idle time after the last change before the document is saved",
    )
    continuation_tail_chars: int = Field(
        default=500,
        gt=0,
        description="Trailing characters of the document sent when continuing to write",
    )


class GenerationSettings(BaseModel):
    """Model selection and prompt limits for the generation service."""

    text_model: str = Field(default="gpt-4o", description="Model for selection edits and translation")
    text_max_tokens: int = Field(default=8000, gt=0, description="Max tokens for non-streamed text calls")
    stream_model: str = Field(default="gpt-4o", description="Model for streamed whole-document generation")
    stream_max_tokens: int = Field(default=16000, gt=0, description="Max tokens for streamed calls")
    seo_max_tokens: int = Field(default=500, gt=0, description="Max tokens for SEO title and description")
    keyword_suggestion_count: int = Field(default=20, gt=0, description="Keyword ideas requested per call")
    default_country: str = Field(default="Slovakia", description="Target market when a keyword request has none")
    image_model: str = Field(default="gemini-2.5-flash-image", description="Image generation model")
    image_aspect_ratio: str = Field(default="16:9", description="Aspect ratio requested for generated images")
    default_image_style: str = Field(default=DEFAULT_IMAGE_STYLE, description="Style used when a request has none")
    default_image_count: int = Field(default=2, ge=0, description="Image placeholders requested per document")
    brand_context_limit: int = Field(default=15000, gt=0, description="Maximum characters of brand context in a prompt")
    brand_context_notice: str = Field(
        default="\n\n[Brand context truncated due to length]",
        description="Appended when brand context is truncated",
    )
    default_template_html: str = Field(default=DEFAULT_TEMPLATE_HTML, description="Template used when none is supplied")
    languages: Dict[str, str] = Field(
        default_factory=lambda: {
            "sk": "Slovak",
            "cs": "Czech",
            "en": "English",
            "da": "Danish",
            "hu": "Hungarian",
        },
        description="Supported output languages by code",
    )

    def language_name(self, code: Optional[str]) -> str:
        return self.languages.get((code or "").lower(), code or "English")


class Config(BaseModel):
    """Configuration settings for Copydesk."""

    model_config = {"populate_by_name": True}

    # API Keys (loaded from environment variables)
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    GOOGLE_API_KEY: str = Field(default="", description="Google Gemini API key")

    EDITOR: EditorSettings = Field(default_factory=EditorSettings, description="Editing core settings")
    GENERATION: GenerationSettings = Field(default_factory=GenerationSettings, description="Generation service settings")

    # Request handling
    REQUEST_TIMEOUT: int = Field(default=120, description="Timeout in seconds for provider calls")
    MAX_RETRIES: int = Field(default=3, description="Attempts per provider call before giving up")
    RETRY_DELAY: float = Field(default=10.0, description="Seconds between provider retries")
    VERBOSE: bool = Field(default=False, description="Phase loggers print debug lines")
    EXTRA_VERBOSE: bool = Field(default=False, description="Phase loggers print full prompts and responses")
    LOG_LEVEL: str = Field(default="INFO", description="Root logging level")

    # FastAPI Configuration
    APP_HOST: str = Field(default="0.0.0.0", description="FastAPI host")
    APP_PORT: int = Field(default=8000, description="FastAPI port")
    APP_RELOAD: bool = Field(default=True, description="FastAPI reload mode")

    def __init__(self):
        super().__init__()
        self.load_from_environment()

    def load_from_environment(self):
        """Load configuration from environment variables."""
        self.OPENAI_API_KEY = os.getenv("OPENAI_KEY", "") or os.getenv("OPENAI_API_KEY", "")
        self.GOOGLE_API_KEY = os.getenv("GEMINI_KEY", "") or os.getenv("GOOGLE_API_KEY", "")

        text_model = os.getenv("COPYDESK_TEXT_MODEL")
        if text_model:
            self.GENERATION.text_model = text_model

        stream_model = os.getenv("COPYDESK_STREAM_MODEL")
        if stream_model:
            self.GENERATION.stream_model = stream_model

        image_model = os.getenv("COPYDESK_IMAGE_MODEL")
        if image_model:
            self.GENERATION.image_model = image_model

        context_window = _int_env("COPYDESK_CONTEXT_WINDOW", self.EDITOR.context_window)
        if context_window >= 0:
            self.EDITOR.context_window = context_window

        autosave_delay = _float_env("COPYDESK_AUTOSAVE_DELAY", self.EDITOR.autosave_delay_seconds)
        if autosave_delay >= 0:
            self.EDITOR.autosave_delay_seconds = autosave_delay

        self.REQUEST_TIMEOUT = _int_env("REQUEST_TIMEOUT", self.REQUEST_TIMEOUT)
        self.MAX_RETRIES = _int_env("MAX_RETRIES", self.MAX_RETRIES)
        self.RETRY_DELAY = _float_env("RETRY_DELAY", self.RETRY_DELAY)
        self.VERBOSE = _bool_env("COPYDESK_VERBOSE", self.VERBOSE)
        self.EXTRA_VERBOSE = _bool_env("COPYDESK_EXTRA_VERBOSE", self.EXTRA_VERBOSE)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()

        # FastAPI Configuration
        self.APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
        self.APP_PORT = _int_env("APP_PORT", 8000)
        self.APP_RELOAD = os.getenv("APP_RELOAD", "true").lower() == "true"


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


# Global configuration instance
config = Config()
