"""
Asynchronous Copydesk Client
============================

aiohttp client for the Copydesk generation API. Its methods take and return
the same request/response models as ``services.generation_service``, so an
EditorSession can be wired to a remote backend or to the in-process service
interchangeably.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
from typing import Any, AsyncIterator, Dict, Optional

import aiohttp
from dotenv import load_dotenv

import json_utils as json
from models import (
    ContinueWritingRequest,
    CopydeskModel,
    EditSelectionRequest,
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
)

from . import CopydeskClientError

load_dotenv()

logger = logging.getLogger(__name__)


class AsyncCopydeskClient:
    """
    Asynchronous client for the Copydesk API.

    Usage:
        async with AsyncCopydeskClient() as client:
            html = await client.edit_selection(
                EditSelectionRequest(selected_html="<p>Hi</p>", instruction="Make it formal")
            )

    Or without context manager:
        client = AsyncCopydeskClient()
        await client.connect()
        try:
            async for chunk in client.generate_content(request):
                print(chunk, end="")
        finally:
            await client.close()
    """

    DEFAULT_BASE_URL = "http://localhost:8000"
    DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=300, connect=30)

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            base_url: API base URL (default: http://localhost:8000 or COPYDESK_BASE_URL env)
            timeout: Request timeout configuration
            session: Existing aiohttp session to reuse; it is not closed by this client
        """
        self.base_url = (base_url or os.getenv("COPYDESK_BASE_URL", self.DEFAULT_BASE_URL)).rstrip("/")
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._session = session
        self._owns_session = session is None

    async def connect(self) -> None:
        """Initialize the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None

    async def __aenter__(self) -> "AsyncCopydeskClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get the active session, raising if not connected."""
        if self._session is None or self._session.closed:
            raise RuntimeError(
                "Client not connected. Use 'async with AsyncCopydeskClient()' or call connect()"
            )
        return self._session

    async def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[CopydeskModel] = None,
    ) -> aiohttp.ClientResponse:
        """Make an async HTTP request with error handling."""
        url = f"{self.base_url}{endpoint}"
        kwargs: Dict[str, Any] = {}
        if payload is not None:
            kwargs["data"] = json.dumps_bytes(payload.to_payload())
            kwargs["headers"] = {"Content-Type": "application/json"}

        try:
            return await self.session.request(method, url, **kwargs)
        except aiohttp.ClientConnectorError as e:
            raise CopydeskClientError(
                f"Cannot connect to Copydesk API at {self.base_url}. "
                "Ensure the server is running."
            ) from e
        except asyncio.TimeoutError as e:
            raise CopydeskClientError(f"Request to {endpoint} timed out") from e
        except aiohttp.ClientError as e:
            raise CopydeskClientError(f"Request failed: {e}") from e

    @staticmethod
    async def _raise_for_status(response: aiohttp.ClientResponse, action: str) -> None:
        if 200 <= response.status < 300:
            return
        text = await response.text()
        try:
            details = json.loads(text)
        except json.JSONDecodeError:
            details = {"body": text}
        if not isinstance(details, dict):
            details = {"body": details}
        message = details.get("error") or details.get("detail") or text or response.reason
        raise CopydeskClientError(
            f"Failed to {action}: {message}",
            status_code=response.status,
            details=details,
        )

    async def _post_json(self, endpoint: str, payload: CopydeskModel, action: str) -> Dict[str, Any]:
        async with await self._request("POST", endpoint, payload) as response:
            await self._raise_for_status(response, action)
            try:
                return json.loads(await response.read())
            except json.JSONDecodeError as e:
                raise CopydeskClientError(
                    f"Failed to {action}: response is not JSON",
                    status_code=response.status,
                ) from e

    async def _post_stream(self, endpoint: str, payload: CopydeskModel, action: str) -> AsyncIterator[str]:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        async with await self._request("POST", endpoint, payload) as response:
            await self._raise_for_status(response, action)
            try:
                async for raw in response.content.iter_any():
                    text = decoder.decode(raw)
                    if text:
                        yield text
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise CopydeskClientError(f"Stream for {action} interrupted: {e}") from e
            tail = decoder.decode(b"", final=True)
            if tail:
                yield tail

    # =========================================================================
    # Health
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        async with await self._request("GET", "/health") as response:
            await self._raise_for_status(response, "check health")
            return json.loads(await response.read())

    async def is_available(self) -> bool:
        """Check if the API is reachable and healthy."""
        try:
            health = await self.health_check()
            return health.get("status") == "ok"
        except CopydeskClientError:
            return False

    # =========================================================================
    # Generation capability
    # =========================================================================

    async def edit_selection(self, request: EditSelectionRequest) -> str:
        """Rewrite the selected markup; returns the replacement fragment."""
        data = await self._post_json("/api/ai/edit-selection", request, "edit selection")
        if "html" not in data:
            raise CopydeskClientError("Edit response has no html", details=data)
        return data["html"]

    async def regenerate_image(self, request: RegenerateImageRequest) -> RegenerateImageResponse:
        data = await self._post_json("/api/ai/regenerate-image", request, "regenerate image")
        return RegenerateImageResponse.model_validate(data)

    async def generate_content(self, request: GenerateContentRequest) -> AsyncIterator[str]:
        """Stream a whole document as decoded text chunks."""
        async for chunk in self._post_stream("/api/ai/generate-content", request, "generate content"):
            yield chunk

    async def generate_images(self, request: GenerateImagesRequest) -> GenerateImagesResponse:
        data = await self._post_json("/api/ai/generate-images", request, "generate images")
        return GenerateImagesResponse.model_validate(data)

    async def translate(self, request: TranslateRequest) -> str:
        data = await self._post_json("/api/ai/translate", request, "translate")
        if "html" not in data:
            raise CopydeskClientError("Translate response has no html", details=data)
        return data["html"]

    async def continue_writing(self, request: ContinueWritingRequest) -> AsyncIterator[str]:
        async for chunk in self._post_stream("/api/ai/continue-writing", request, "continue writing"):
            yield chunk

    # =========================================================================
    # SEO and keyword research
    # =========================================================================

    async def generate_seo(self, request: GenerateSeoRequest) -> SeoMetadata:
        data = await self._post_json("/api/ai/generate-seo", request, "generate SEO metadata")
        return SeoMetadata.model_validate(data)

    async def suggest_keywords(self, request: SuggestKeywordsRequest) -> SuggestKeywordsResponse:
        data = await self._post_json("/api/ai/suggest-keywords", request, "suggest keywords")
        return SuggestKeywordsResponse.model_validate(data)
