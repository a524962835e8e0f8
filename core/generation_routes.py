"""
Generation API routes for Copydesk.

Every route delegates to the shared GenerationService. Provider failures are
mapped here: a missing API key answers 400, anything else 500, both with an
``{"error": ...}`` body. Streaming routes pull the first chunk before the
response starts so that those failures still produce a proper status code.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Awaitable

from fastapi import Depends
from fastapi.responses import JSONResponse, StreamingResponse

from ai_service import AIConfigurationError
from models import (
    ContinueWritingRequest,
    EditSelectionRequest,
    EditSelectionResponse,
    GenerateContentRequest,
    GenerateImagesRequest,
    GenerateImagesResponse,
    GenerateSeoRequest,
    RegenerateImageRequest,
    RegenerateImageResponse,
    SeoMetadata,
    SuggestKeywordsRequest,
    SuggestKeywordsResponse,
    TranslateRequest,
    TranslateResponse,
)

from .app_state import app, logger

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def get_generation() -> Any:
    """Route dependency returning the shared GenerationService."""
    # Imported here: services.generation_service imports core.prompt_templates
    from services.generation_service import get_generation_service

    return get_generation_service()


def _error_response(action: str, exc: Exception) -> JSONResponse:
    if isinstance(exc, AIConfigurationError):
        logger.error("%s unavailable: %s", action, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})
    logger.error("%s failed: %s", action, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"error": str(exc) or f"Failed to {action}"})


async def _call(action: str, awaitable: Awaitable[Any]) -> Any:
    try:
        return await awaitable
    except Exception as exc:
        return _error_response(action, exc)


async def _stream_response(action: str, stream: AsyncIterator[str]):
    try:
        first = await stream.__anext__()
    except StopAsyncIteration:
        first = ""
    except Exception as exc:
        return _error_response(action, exc)

    async def _body() -> AsyncIterator[str]:
        if first:
            yield first
        try:
            async for chunk in stream:
                yield chunk
        except Exception as exc:
            # Status is already sent; the client sees a truncated body
            logger.error("%s stream interrupted: %s", action, exc)

    return StreamingResponse(
        _body(),
        media_type=STREAM_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/ai/edit-selection", response_model=EditSelectionResponse)
async def edit_selection(request: EditSelectionRequest, generation=Depends(get_generation)):
    result = await _call("edit selection", generation.edit_selection(request))
    if isinstance(result, JSONResponse):
        return result
    return EditSelectionResponse(html=result)


@app.post("/api/ai/regenerate-image", response_model=RegenerateImageResponse, response_model_by_alias=True)
async def regenerate_image(request: RegenerateImageRequest, generation=Depends(get_generation)):
    return await _call("regenerate image", generation.regenerate_image(request))


@app.post("/api/ai/generate-content")
async def generate_content(request: GenerateContentRequest, generation=Depends(get_generation)):
    logger.info(
        "Generating %s in %s (topic=%r, images=%d)",
        request.project_type, request.language, request.topic[:80], request.image_count,
    )
    return await _stream_response("generate content", generation.generate_content(request))


@app.post("/api/ai/generate-images", response_model=GenerateImagesResponse, response_model_by_alias=True)
async def generate_images(request: GenerateImagesRequest, generation=Depends(get_generation)):
    return await _call("generate images", generation.generate_images(request))


@app.post("/api/ai/translate", response_model=TranslateResponse)
async def translate(request: TranslateRequest, generation=Depends(get_generation)):
    if request.source_language == request.target_language:
        return TranslateResponse(html=request.content_html)
    result = await _call("translate", generation.translate(request))
    if isinstance(result, JSONResponse):
        return result
    return TranslateResponse(html=result)


@app.post("/api/ai/continue-writing")
async def continue_writing(request: ContinueWritingRequest, generation=Depends(get_generation)):
    return await _stream_response("continue writing", generation.continue_writing(request))


@app.post("/api/ai/generate-seo", response_model=SeoMetadata)
async def generate_seo(request: GenerateSeoRequest, generation=Depends(get_generation)):
    return await _call("generate SEO metadata", generation.generate_seo(request))


@app.post("/api/ai/suggest-keywords", response_model=SuggestKeywordsResponse)
async def suggest_keywords(request: SuggestKeywordsRequest, generation=Depends(get_generation)):
    logger.info("Suggesting keywords for %r (%s)", request.brand or "the brand", request.country or "default market")
    return await _call("suggest keywords", generation.suggest_keywords(request))
