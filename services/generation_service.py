"""
Generation service.

Server side of the generation contract used by the editor: selection edits,
image regeneration, streamed whole-document generation, placeholder image
fill, translation, continue-writing, SEO metadata and keyword ideas. The
editor's panel and streaming assembler call these methods directly
in-process, or through ``client.AsyncCopydeskClient`` over HTTP; both
expose the same surface.
"""

from __future__ import annotations

import logging
import re
import threading
import uuid
from typing import AsyncIterator, Optional

from pydantic import ValidationError

import json_utils as json
from ai_service import AIService, get_ai_service
from config import config
from core.prompt_templates import (
    build_brand_context,
    build_continue_writing_prompt,
    build_document_prompt,
    build_edit_selection_prompt,
    build_image_edit_prompt,
    build_keyword_suggestions_prompt,
    build_placeholder_image_prompt,
    build_seo_metadata_prompt,
    build_translation_prompt,
)
from editor.placeholders import Placeholder, ResolvedImage, find_placeholders, resolve_placeholders
from logging_utils import Phase, PhaseLogger, create_phase_logger
from models import (
    ContinueWritingRequest,
    EditSelectionRequest,
    GenerateContentRequest,
    GenerateImagesRequest,
    GenerateImagesResponse,
    GenerateSeoRequest,
    KeywordSuggestion,
    PlaceholderImage,
    RegenerateImageRequest,
    RegenerateImageResponse,
    SeoMetadata,
    SuggestKeywordsRequest,
    SuggestKeywordsResponse,
    TranslateRequest,
)

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n?|\n?\s*```\s*$")
_PREAMBLE_RE = re.compile(r"^(?:here is|here's|sure|certainly)[^<\n]*:\s*\n", re.IGNORECASE)


def clean_markup_output(text: str) -> str:
    """Strip markdown code fences and a leading conversational preamble from model output."""
    cleaned = _CODE_FENCE_RE.sub("", (text or "").strip())
    cleaned = _PREAMBLE_RE.sub("", cleaned)
    return cleaned.strip()


class GenerationService:
    """Builds prompts and calls the AI providers for every editor capability."""

    def __init__(self, ai_service: Optional[AIService] = None):
        self._ai_service = ai_service

    @property
    def ai(self) -> AIService:
        if self._ai_service is None:
            self._ai_service = get_ai_service()
        return self._ai_service

    @staticmethod
    def _phase_logger(prefix: str) -> PhaseLogger:
        return create_phase_logger(
            session_id=f"{prefix}-{uuid.uuid4().hex[:8]}",
            verbose=config.VERBOSE,
            extra_verbose=config.EXTRA_VERBOSE,
        )

    # =========================================================================
    # SELECTION EDITS
    # =========================================================================

    async def edit_selection(self, request: EditSelectionRequest) -> str:
        """Rewrite the selected markup; returns the replacement fragment."""
        phase_logger = self._phase_logger("edit")
        prompt = build_edit_selection_prompt(
            request.selected_html,
            request.instruction,
            request.context_before,
            request.context_after,
            request.brand_name,
        )
        with phase_logger.phase(Phase.SELECTION_EDIT):
            phase_logger.info(f"Editing {len(request.selected_html)} chars of markup")
            phase_logger.log_prompt(config.GENERATION.text_model, prompt.system, prompt.user)
            result = await self.ai.generate_content(prompt.user, prompt.system)
            phase_logger.log_response(config.GENERATION.text_model, result)
        return clean_markup_output(result)

    async def regenerate_image(self, request: RegenerateImageRequest) -> RegenerateImageResponse:
        phase_logger = self._phase_logger("image")
        prompt = build_image_edit_prompt(request.prompt, request.original_alt, request.image_style)
        with phase_logger.phase(Phase.IMAGE_EDIT):
            phase_logger.log_prompt(config.GENERATION.image_model, None, prompt)
            image = await self.ai.generate_image(prompt)
            phase_logger.info(f"Generated {image.mime_type} image ({len(image.data)} bytes)")
        return RegenerateImageResponse(image_url=image.data_url, alt=request.original_alt or request.prompt)

    # =========================================================================
    # WHOLE-DOCUMENT GENERATION
    # =========================================================================

    async def generate_content(self, request: GenerateContentRequest) -> AsyncIterator[str]:
        """Stream a whole blog post or presell page as markup chunks."""
        profile = request.brand_profile
        brand_context = build_brand_context(
            request.brand_context,
            products=profile.products if profile else None,
            tone_of_voice=profile.tone_of_voice if profile else None,
            target_audience=profile.target_audience if profile else None,
            conditions=profile.vop if profile else None,
        )
        prompt = build_document_prompt(
            project_type=request.project_type,
            topic=request.topic,
            keywords=request.keywords,
            language=request.language,
            brand_name=request.brand_name or "the brand",
            brand_context=brand_context,
            template_html=request.template_html or config.GENERATION.default_template_html,
            image_count=request.image_count,
            title=request.title,
            custom_prompt=request.custom_prompt,
        )

        phase_logger = self._phase_logger("generate")
        with phase_logger.phase(Phase.STREAMING, sub_label=request.project_type):
            phase_logger.log_prompt(config.GENERATION.stream_model, prompt.system, prompt.user)
            produced = 0
            async for chunk in self.ai.generate_content_stream(prompt.user, prompt.system):
                produced += len(chunk)
                yield chunk
            phase_logger.info(f"Streamed {produced} chars")

    async def generate_images(self, request: GenerateImagesRequest) -> GenerateImagesResponse:
        """One image per placeholder in ``html_content``, generated concurrently."""
        placeholders = find_placeholders(request.html_content)
        if not placeholders:
            return GenerateImagesResponse(images=[])

        phase_logger = self._phase_logger("images")

        async def _generate(placeholder: Placeholder) -> ResolvedImage:
            prompt = build_placeholder_image_prompt(
                placeholder.section,
                placeholder.alt,
                request.brand_name,
                request.brand_context,
                request.image_style,
            )
            image = await self.ai.generate_image(prompt)
            return ResolvedImage(placeholder.markup, image.data_url, placeholder.alt)

        with phase_logger.phase(Phase.IMAGE_FILL):
            resolved = await resolve_placeholders(placeholders, _generate)
            phase_logger.info(f"Resolved {len(resolved)}/{len(placeholders)} placeholders")

        return GenerateImagesResponse(
            images=[
                PlaceholderImage(placeholder=image.placeholder, image_url=image.image_url, alt=image.alt)
                for image in resolved
            ]
        )

    # =========================================================================
    # TRANSLATION AND CONTINUATION
    # =========================================================================

    async def translate(self, request: TranslateRequest) -> str:
        phase_logger = self._phase_logger("translate")
        prompt = build_translation_prompt(
            request.content_html,
            request.source_language,
            request.target_language,
            request.brand_names,
        )
        with phase_logger.phase(Phase.TRANSLATION, sub_label=f"{request.source_language}->{request.target_language}"):
            phase_logger.log_prompt(config.GENERATION.text_model, prompt.system, prompt.user)
            result = await self.ai.generate_content(prompt.user, prompt.system)
        return clean_markup_output(result)

    async def continue_writing(self, request: ContinueWritingRequest) -> AsyncIterator[str]:
        prompt = build_continue_writing_prompt(request.last_content, request.project_type, request.brand_name)
        phase_logger = self._phase_logger("continue")
        with phase_logger.phase(Phase.CONTINUATION):
            async for chunk in self.ai.generate_content_stream(
                prompt.user, prompt.system, model=config.GENERATION.text_model,
                max_tokens=config.GENERATION.text_max_tokens,
            ):
                yield chunk

    # =========================================================================
    # SEO METADATA AND KEYWORD RESEARCH
    # =========================================================================

    async def generate_seo(self, request: GenerateSeoRequest) -> SeoMetadata:
        """SEO title and meta description for a finished document."""
        phase_logger = self._phase_logger("seo")
        prompt = build_seo_metadata_prompt(
            request.content_html,
            request.title,
            request.keywords,
            request.language,
            request.brand_name,
        )
        with phase_logger.phase(Phase.SEO):
            phase_logger.log_prompt(config.GENERATION.text_model, prompt.system, prompt.user)
            result = await self.ai.generate_content(
                prompt.user, prompt.system, max_tokens=config.GENERATION.seo_max_tokens
            )
            phase_logger.log_response(config.GENERATION.text_model, result)

        parsed = json.extract_json(result)
        if not isinstance(parsed, dict):
            raise ValueError("SEO response is not a JSON object")
        return SeoMetadata(
            seo_title=str(parsed.get("seo_title") or ""),
            seo_description=str(parsed.get("seo_description") or ""),
        )

    async def suggest_keywords(self, request: SuggestKeywordsRequest) -> SuggestKeywordsResponse:
        """
        Keyword ideas for a brand and market.

        An answer that holds no JSON array yields no suggestions; entries
        without a keyword are dropped.
        """
        phase_logger = self._phase_logger("keywords")
        country = request.country or config.GENERATION.default_country
        prompt = build_keyword_suggestions_prompt(
            brand=request.brand,
            brand_context=build_brand_context(request.brand_context),
            country=country,
            language=request.language,
            categories=request.categories,
        )
        with phase_logger.phase(Phase.KEYWORDS, sub_label=country):
            phase_logger.log_prompt(config.GENERATION.text_model, prompt.system, prompt.user)
            result = await self.ai.generate_content(prompt.user, prompt.system)

            parsed = json.extract_json(result)
            if not isinstance(parsed, list):
                phase_logger.warning("Keyword response holds no JSON array")
                return SuggestKeywordsResponse(suggestions=[])

            suggestions = []
            for item in parsed:
                if not isinstance(item, dict) or not item.get("keyword"):
                    continue
                try:
                    suggestions.append(KeywordSuggestion.model_validate(item))
                except ValidationError as exc:
                    logger.debug("Skipping keyword entry %r: %s", item, exc)
            phase_logger.info(f"Parsed {len(suggestions)}/{len(parsed)} keyword suggestions")
        return SuggestKeywordsResponse(suggestions=suggestions)


_shared_generation_service: Optional[GenerationService] = None
_generation_service_lock = threading.Lock()


def get_generation_service() -> GenerationService:
    """Return the shared GenerationService, creating it on first use."""
    global _shared_generation_service
    if _shared_generation_service is None:
        with _generation_service_lock:
            if _shared_generation_service is None:
                _shared_generation_service = GenerationService()
    return _shared_generation_service
