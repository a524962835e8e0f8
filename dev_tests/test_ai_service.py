"""
Tests for ai_service.py - provider clients, retries and response handling.

Test Areas:
1. Client initialization and the shared instance
2. Retry classification and the retry loop
3. Text generation (single call and stream)
4. Image generation and image extraction
"""

import base64

import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import ai_service
from ai_service import (
    AIConfigurationError,
    AIRequestError,
    AIService,
    GeneratedImage,
    ImageGenerationError,
    RetryPolicy,
    is_transient,
    request_id_of,
)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def service_without_keys():
    """AIService with no provider clients."""
    with patch.object(ai_service.config, "OPENAI_API_KEY", ""), \
         patch.object(ai_service.config, "GOOGLE_API_KEY", ""):
        yield AIService()


@pytest.fixture
def service(service_without_keys):
    """AIService with mocked OpenAI and Google clients and no retry delay."""
    svc = service_without_keys
    svc.openai_client = MagicMock()
    svc.openai_client.chat.completions.create = AsyncMock()
    svc.google_client = MagicMock()
    svc.google_client.aio.models.generate_content = AsyncMock()
    svc.retry = RetryPolicy(attempts=3, delay_seconds=0.0)
    return svc


@pytest.fixture
def reset_singleton():
    ai_service._shared_ai_service = None
    yield
    ai_service._shared_ai_service = None


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def delta(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


def image_response(data, mime_type="image/png"):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


class StatusError(Exception):
    def __init__(self, status):
        super().__init__(f"HTTP {status}")
        self.status = status


# ============================================================================
# Initialization
# ============================================================================

class TestInitialization:
    """Client creation from configured keys."""

    def test_clients_created_when_keys_present(self):
        """
        Given: Both API keys configured
        When: AIService is created
        Then: An OpenAI client and a Google client are built with those keys
        """
        with patch.object(ai_service.config, "OPENAI_API_KEY", "sk-test"), \
             patch.object(ai_service.config, "GOOGLE_API_KEY", "g-test"), \
             patch("ai_service.openai.AsyncOpenAI") as mock_openai, \
             patch("ai_service.genai.Client") as mock_genai:
            svc = AIService()

        assert svc.openai_client is mock_openai.return_value
        assert svc.google_client is mock_genai.return_value
        assert mock_openai.call_args.kwargs["api_key"] == "sk-test"
        assert mock_openai.call_args.kwargs["max_retries"] == 0
        mock_genai.assert_called_once_with(api_key="g-test")

    def test_no_keys_leaves_clients_unset(self, service_without_keys):
        assert service_without_keys.openai_client is None
        assert service_without_keys.google_client is None

    def test_shared_instance(self, reset_singleton):
        with patch("ai_service.AIService") as mock_cls:
            first = ai_service.get_ai_service()
            second = ai_service.get_ai_service()
        assert first is second
        mock_cls.assert_called_once()

    @pytest.mark.asyncio
    async def test_shutdown_closes_shared_instance(self, reset_singleton):
        shared = MagicMock()
        shared.close = AsyncMock()
        ai_service._shared_ai_service = shared

        await ai_service.shutdown_ai_service()

        shared.close.assert_awaited_once()
        assert ai_service._shared_ai_service is None


# ============================================================================
# Retries
# ============================================================================

class TestRetries:
    """Retry classification and the retry loop."""

    @pytest.mark.parametrize(
        "exc,expected",
        [
            (ConnectionError("reset"), True),
            (StatusError(429), True),
            (StatusError(503), True),
            (StatusError(400), False),
            (RuntimeError("Rate limit reached"), True),
            (ValueError("bad prompt"), False),
        ],
    )
    def test_should_retry(self, exc, expected):
        assert is_transient(exc) is expected

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, service):
        """
        Given: An operation that fails once with a transient error
        When: Executed with retries
        Then: The second attempt's result is returned
        """
        operation = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])

        result = await service.retry.run(operation, provider="openai", model_id="m", action="test")

        assert result == "ok"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_persistent_failure_raises_request_error(self, service):
        operation = AsyncMock(side_effect=ConnectionError("reset"))

        with pytest.raises(AIRequestError) as exc_info:
            await service.retry.run(operation, provider="openai", model_id="m", action="test")

        assert exc_info.value.attempts == 3
        assert operation.await_count == 3
        assert isinstance(exc_info.value.cause, ConnectionError)

    @pytest.mark.asyncio
    async def test_permanent_failure_is_not_retried(self, service):
        operation = AsyncMock(side_effect=ValueError("bad prompt"))

        with pytest.raises(ValueError):
            await service.retry.run(operation, provider="openai", model_id="m", action="test")

        assert operation.await_count == 1

    def test_policy_from_config(self):
        with patch.object(ai_service.config, "MAX_RETRIES", 0), \
             patch.object(ai_service.config, "RETRY_DELAY", 2.5):
            policy = RetryPolicy.from_config()
        assert policy.attempts == 1
        assert policy.delay_seconds == 2.5

    def test_request_id_from_response_headers(self):
        exc = RuntimeError("boom")
        exc.response = SimpleNamespace(headers={"x-request-id": "req_123"})
        assert request_id_of(exc) == "req_123"
        assert request_id_of(RuntimeError("plain")) is None


# ============================================================================
# Text
# ============================================================================

class TestText:
    """Chat completions."""

    @pytest.mark.asyncio
    async def test_generate_content_returns_message(self, service):
        service.openai_client.chat.completions.create.return_value = completion("<p>Hi</p>")

        result = await service.generate_content("user", "system")

        assert result == "<p>Hi</p>"
        kwargs = service.openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}
        assert kwargs["messages"][1] == {"role": "user", "content": "user"}

    @pytest.mark.asyncio
    async def test_generate_content_without_choices(self, service):
        service.openai_client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        assert await service.generate_content("user", "system") == ""

    @pytest.mark.asyncio
    async def test_generate_content_without_key(self, service_without_keys):
        with pytest.raises(AIConfigurationError):
            await service_without_keys.generate_content("user", "system")

    @pytest.mark.asyncio
    async def test_stream_yields_deltas(self, service):
        """
        Given: A stream with an empty delta and a chunk without choices
        When: It is consumed
        Then: Only the text deltas come out
        """
        async def chunks():
            for item in [delta("<p>A"), delta(None), SimpleNamespace(choices=[]), delta("B</p>")]:
                yield item

        service.openai_client.chat.completions.create.return_value = chunks()

        received = [chunk async for chunk in service.generate_content_stream("user", "system")]

        assert received == ["<p>A", "B</p>"]
        assert service.openai_client.chat.completions.create.call_args.kwargs["stream"] is True


# ============================================================================
# Images
# ============================================================================

class TestImages:
    """Image generation."""

    def test_data_url(self):
        assert GeneratedImage(b"\x89PNG").data_url == "data:image/png;base64,iVBORw=="

    @pytest.mark.asyncio
    async def test_generate_image(self, service):
        service.google_client.aio.models.generate_content.return_value = image_response(b"img", "image/jpeg")

        image = await service.generate_image("a beach")

        assert image == GeneratedImage(b"img", "image/jpeg")

    @pytest.mark.asyncio
    async def test_base64_string_data_is_decoded(self, service):
        encoded = base64.b64encode(b"img").decode("ascii")
        service.google_client.aio.models.generate_content.return_value = image_response(encoded)

        image = await service.generate_image("a beach")

        assert image.data == b"img"

    @pytest.mark.asyncio
    async def test_response_without_image_raises(self, service):
        service.google_client.aio.models.generate_content.return_value = SimpleNamespace(candidates=[])
        with pytest.raises(ImageGenerationError):
            await service.generate_image("a beach")

    @pytest.mark.asyncio
    async def test_generate_image_without_key(self, service_without_keys):
        with pytest.raises(AIConfigurationError):
            await service_without_keys.generate_image("a beach")
