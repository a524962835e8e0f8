"""
AI Service Module for Copydesk
==============================

Provider access for the generation service:
- OpenAI chat completions for selection edits, translation and streamed documents
- Google GenAI image generation for image edits and placeholder fill

Every provider call runs under a RetryPolicy: transient failures (timeouts,
dropped connections, 429/5xx) are retried after a fixed delay, anything else
propagates at once, and a call that keeps failing surfaces as AIRequestError.
"""

import asyncio
import base64
import logging
import threading
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

import aiohttp
import openai
from google import genai
from google.genai import types

from config import config

logger = logging.getLogger(__name__)


class AIRequestError(RuntimeError):
    """A provider call that still failed after its last retry."""

    def __init__(self, provider: str, model: str, attempts: int, max_attempts: int, cause: Exception):
        super().__init__(f"{provider}/{model} failed {attempts}/{max_attempts} times: {cause}")
        self.provider = provider
        self.model = model
        self.attempts = attempts
        self.max_attempts = max_attempts
        self.cause = cause


class AIConfigurationError(RuntimeError):
    """Raised when a provider is needed but no API key is configured."""

    def __init__(self, provider: str):
        super().__init__(f"No {provider} API key configured")
        self.provider = provider


class ImageGenerationError(RuntimeError):
    """Raised when the image model answers without image data."""


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


# =============================================================================
# RETRY POLICY
# =============================================================================

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})

TRANSIENT_MESSAGE_MARKERS = (
    "timeout",
    "timed out",
    "temporarily unavailable",
    "internal server error",
    "bad gateway",
    "rate limit",
    "overloaded",
    "service unavailable",
    "connection reset",
    "connection refused",
)


def is_transient(exc: BaseException) -> bool:
    """Whether a failed provider call is worth repeating."""
    if isinstance(exc, (asyncio.TimeoutError, ConnectionError, aiohttp.ClientError)):
        return True
    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError)):
        return True
    for attr in ("status_code", "status", "code"):
        if getattr(exc, attr, None) in TRANSIENT_STATUS_CODES:
            return True
    text = str(exc).lower()
    return any(marker in text for marker in TRANSIENT_MESSAGE_MARKERS)


def request_id_of(exc: BaseException) -> Optional[str]:
    """Provider request id carried by an SDK exception, for log correlation."""
    rid = getattr(exc, "request_id", None)
    if rid:
        return str(rid)
    headers = getattr(getattr(exc, "response", None), "headers", None)
    if headers is not None:
        rid = headers.get("x-request-id")
    return str(rid) if rid else None


@dataclass
class RetryPolicy:
    """Fixed-delay retry of transient provider failures."""

    attempts: int = 3
    delay_seconds: float = 10.0

    @classmethod
    def from_config(cls) -> "RetryPolicy":
        return cls(attempts=max(1, config.MAX_RETRIES), delay_seconds=max(0.0, config.RETRY_DELAY))

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        provider: str,
        model_id: str,
        action: str,
    ) -> T:
        failures = 0
        while True:
            try:
                return await operation()
            except (AIRequestError, AIConfigurationError, ImageGenerationError):
                raise
            except Exception as exc:
                if not is_transient(exc):
                    raise
                failures += 1
                if failures >= self.attempts:
                    raise AIRequestError(provider, model_id, failures, self.attempts, exc) from exc
                rid = request_id_of(exc)
                logger.warning(
                    "%s via %s/%s failed (%d/%d)%s, retrying in %.1fs: %s",
                    action,
                    provider,
                    model_id,
                    failures,
                    self.attempts,
                    f" request_id={rid}" if rid else "",
                    self.delay_seconds,
                    exc,
                )
                await asyncio.sleep(self.delay_seconds)


# =============================================================================
# SERVICE
# =============================================================================

_shared_ai_service: Optional["AIService"] = None
_ai_service_init_lock = threading.Lock()


def get_ai_service() -> "AIService":
    """Return the shared AIService instance, creating it on first use."""
    global _shared_ai_service
    if _shared_ai_service is None:
        with _ai_service_init_lock:
            if _shared_ai_service is None:
                _shared_ai_service = AIService()
    return _shared_ai_service


class AIService:
    """Text and image generation across OpenAI and Google"""

    def __init__(self, retry_policy: Optional[RetryPolicy] = None):
        self.retry = retry_policy or RetryPolicy.from_config()
        self.openai_client: Optional[openai.AsyncOpenAI] = None
        self.google_client: Optional[genai.Client] = None

        if config.OPENAI_API_KEY:
            self.openai_client = openai.AsyncOpenAI(
                api_key=config.OPENAI_API_KEY,
                timeout=float(config.REQUEST_TIMEOUT),
                max_retries=0,  # RetryPolicy owns retries
            )
        else:
            logger.warning("OPENAI_API_KEY not set; text generation unavailable")

        if config.GOOGLE_API_KEY:
            self.google_client = genai.Client(api_key=config.GOOGLE_API_KEY)
        else:
            logger.warning("GOOGLE_API_KEY not set; image generation unavailable")

    # =========================================================================
    # TEXT
    # =========================================================================

    def _require_openai(self) -> openai.AsyncOpenAI:
        if self.openai_client is None:
            raise AIConfigurationError("OpenAI")
        return self.openai_client

    @staticmethod
    def _messages(prompt: str, system_prompt: str) -> list:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

    async def generate_content(
        self,
        prompt: str,
        system_prompt: str,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Single chat completion; returns the message text ('' when the model returns none)."""
        client = self._require_openai()
        model_id = model or config.GENERATION.text_model

        async def _call():
            return await client.chat.completions.create(
                model=model_id,
                max_tokens=max_tokens or config.GENERATION.text_max_tokens,
                messages=self._messages(prompt, system_prompt),
            )

        response = await self.retry.run(_call, provider="openai", model_id=model_id, action="completion")
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate_content_stream(
        self,
        prompt: str,
        system_prompt: str,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[str]:
        """
        Stream a chat completion as text deltas.

        Only opening the stream is retried; once text has been yielded an
        error propagates to the consumer, which keeps what it already has.
        """
        client = self._require_openai()
        model_id = model or config.GENERATION.stream_model

        async def _open():
            return await client.chat.completions.create(
                model=model_id,
                max_tokens=max_tokens or config.GENERATION.stream_max_tokens,
                messages=self._messages(prompt, system_prompt),
                stream=True,
            )

        stream = await self.retry.run(_open, provider="openai", model_id=model_id, action="stream")
        async for chunk in stream:
            if not chunk.choices:
                continue
            text = chunk.choices[0].delta.content
            if text:
                yield text

    # =========================================================================
    # IMAGES
    # =========================================================================

    async def generate_image(
        self,
        prompt: str,
        model: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
    ) -> GeneratedImage:
        if self.google_client is None:
            raise AIConfigurationError("Google")
        client = self.google_client
        model_id = model or config.GENERATION.image_model
        generation_config = types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
            image_config=types.ImageConfig(
                aspect_ratio=aspect_ratio or config.GENERATION.image_aspect_ratio
            ),
        )

        async def _call():
            return await client.aio.models.generate_content(
                model=model_id,
                contents=prompt,
                config=generation_config,
            )

        response = await self.retry.run(_call, provider="google", model_id=model_id, action="image generation")
        image = self._extract_image(response)
        if image is None:
            raise ImageGenerationError(f"No image data in response from {model_id}")
        return image

    @staticmethod
    def _extract_image(response: Any) -> Optional[GeneratedImage]:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            data = getattr(inline, "data", None) if inline is not None else None
            if data:
                if isinstance(data, str):
                    data = base64.b64decode(data)
                return GeneratedImage(data, getattr(inline, "mime_type", None) or "image/png")
        return None

    async def close(self):
        """Release provider clients"""
        if self.openai_client is not None:
            await self.openai_client.close()
            logger.info("OpenAI client closed")
        if self.google_client is not None:
            async_client = getattr(self.google_client, "aio", None)
            if async_client is not None and hasattr(async_client, "aclose"):
                await async_client.aclose()
            logger.info("Google GenAI client closed")


async def shutdown_ai_service() -> None:
    """Close the shared AIService if one was created."""
    global _shared_ai_service
    with _ai_service_init_lock:
        service, _shared_ai_service = _shared_ai_service, None
    if service is not None:
        await service.close()
