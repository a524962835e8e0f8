"""
Tests for config.py - Configuration management module.

Test Areas:
1. Defaults for the editing core and generation settings
2. Environment loading (API keys, overrides, invalid values)
3. Language names
"""

import os

import pytest
from unittest.mock import patch

from config import Config, EditorSettings, GenerationSettings


# ============================================================================
# Defaults
# ============================================================================

class TestDefaults:
    """Tests for default values."""

    def test_editor_defaults(self):
        """
        Given: No overrides
        When: EditorSettings is created
        Then: Context window, panel geometry and autosave delay have their defaults
        """
        settings = EditorSettings()
        assert settings.context_window == 200
        assert settings.highlight_class == "ai-edit-highlight"
        assert settings.panel_width == 320
        assert settings.panel_vertical_offset == 10
        assert settings.autosave_delay_seconds == 2.0
        assert settings.continuation_tail_chars == 500

    def test_generation_defaults(self):
        settings = GenerationSettings()
        assert settings.brand_context_limit == 15000
        assert settings.image_aspect_ratio == "16:9"
        assert set(settings.languages) == {"sk", "cs", "en", "da", "hu"}

    def test_negative_context_window_is_rejected(self):
        with pytest.raises(ValueError):
            EditorSettings(context_window=-1)


# ============================================================================
# Environment Loading
# ============================================================================

class TestEnvironmentLoading:
    """Tests for Config.load_from_environment()."""

    def test_api_keys_from_standard_names(self, clean_env, mock_env_vars):
        cfg = Config()
        assert cfg.OPENAI_API_KEY == "sk-test-openai-key-12345"
        assert cfg.GOOGLE_API_KEY == "test-google-key-12345"

    def test_short_key_names_take_precedence(self, clean_env):
        env = {
            "OPENAI_KEY": "short-openai",
            "OPENAI_API_KEY": "long-openai",
            "GEMINI_KEY": "short-gemini",
        }
        with patch.dict(os.environ, env):
            cfg = Config()
        assert cfg.OPENAI_API_KEY == "short-openai"
        assert cfg.GOOGLE_API_KEY == "short-gemini"

    def test_missing_keys_are_empty(self, clean_env):
        cfg = Config()
        assert cfg.OPENAI_API_KEY == ""
        assert cfg.GOOGLE_API_KEY == ""

    def test_model_overrides(self):
        env = {
            "COPYDESK_TEXT_MODEL": "gpt-test",
            "COPYDESK_STREAM_MODEL": "gpt-stream",
            "COPYDESK_IMAGE_MODEL": "image-test",
        }
        with patch.dict(os.environ, env):
            cfg = Config()
        assert cfg.GENERATION.text_model == "gpt-test"
        assert cfg.GENERATION.stream_model == "gpt-stream"
        assert cfg.GENERATION.image_model == "image-test"

    def test_editor_overrides(self):
        with patch.dict(os.environ, {"COPYDESK_CONTEXT_WINDOW": "50", "COPYDESK_AUTOSAVE_DELAY": "0.5"}):
            cfg = Config()
        assert cfg.EDITOR.context_window == 50
        assert cfg.EDITOR.autosave_delay_seconds == 0.5

    @pytest.mark.parametrize("value", ["abc", "-5"])
    def test_invalid_context_window_is_ignored(self, value):
        with patch.dict(os.environ, {"COPYDESK_CONTEXT_WINDOW": value}):
            cfg = Config()
        assert cfg.EDITOR.context_window == 200

    @pytest.mark.parametrize("value", ["later", "-1"])
    def test_invalid_autosave_delay_is_ignored(self, value):
        with patch.dict(os.environ, {"COPYDESK_AUTOSAVE_DELAY": value}):
            cfg = Config()
        assert cfg.EDITOR.autosave_delay_seconds == 2.0

    def test_invalid_numeric_values_fall_back(self):
        with patch.dict(os.environ, {"MAX_RETRIES": "many", "RETRY_DELAY": "soon", "APP_PORT": "http"}):
            cfg = Config()
        assert cfg.MAX_RETRIES == 3
        assert cfg.RETRY_DELAY == 10.0
        assert cfg.APP_PORT == 8000

    @pytest.mark.parametrize(
        "value,expected",
        [("true", True), ("1", True), ("yes", True), ("false", False), ("0", False), ("", False)],
    )
    def test_verbose_flag(self, value, expected):
        with patch.dict(os.environ, {"COPYDESK_VERBOSE": value}):
            cfg = Config()
        assert cfg.VERBOSE is expected

    def test_log_level_is_upper_cased(self):
        with patch.dict(os.environ, {"LOG_LEVEL": "debug"}):
            cfg = Config()
        assert cfg.LOG_LEVEL == "DEBUG"

    def test_reload_flag(self):
        with patch.dict(os.environ, {"APP_RELOAD": "false"}):
            cfg = Config()
        assert cfg.APP_RELOAD is False


# ============================================================================
# Language Names
# ============================================================================

class TestLanguageNames:
    @pytest.mark.parametrize(
        "code,name",
        [("sk", "Slovak"), ("CS", "Czech"), ("hu", "Hungarian"), ("xx", "xx"), (None, "English")],
    )
    def test_language_name(self, code, name):
        assert GenerationSettings().language_name(code) == name
