"""Unit tests for LLMClient."""

import httpx
import pytest
from unittest.mock import AsyncMock, Mock, patch

from altai.models.config import CapabilitiesConfig, Config
from altai.services.exceptions import CapabilityDisabledError, ConfigurationError, UpstreamError
from altai.services.llm_client import LLMClient


def create_mock_response(body, status_code=200):
    """Create a mock httpx response with a JSON body."""
    response = Mock()
    response.status_code = status_code
    if isinstance(body, Exception):
        response.json = Mock(side_effect=body)
    else:
        response.json = Mock(return_value=body)
    return response


def create_mock_client(response):
    """Create a mock httpx.AsyncClient usable as an async context manager."""
    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    return mock_client


COMPLETION = {
    "choices": [{"message": {"role": "assistant", "content": "Hello there"}}],
    "usage": {"prompt_tokens": 10, "completion_tokens": 2, "total_tokens": 12},
}


class TestLLMClient:
    """Test LLMClient class."""

    @pytest.fixture
    def llm_client(self, config):
        """Create LLM client with test config."""
        return LLMClient(config)

    def test_client_initialization(self, llm_client, config):
        """Test LLM client initializes correctly."""
        assert llm_client.config == config
        assert llm_client.timeout.read == 60.0
        assert llm_client.timeout.connect == 10.0
        assert llm_client.completions_url == "https://api.test.com/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_chat_success(self, llm_client):
        """Test a successful completion returns content and usage."""
        mock_client = create_mock_client(create_mock_response(COMPLETION))

        with patch("httpx.AsyncClient", return_value=mock_client):
            completion = await llm_client.chat([{"role": "user", "content": "Hi"}])

        assert completion.content == "Hello there"
        assert completion.usage["total_tokens"] == 12

        args, kwargs = mock_client.post.call_args
        assert args[0] == "https://api.test.com/v1/chat/completions"
        assert kwargs["json"] == {
            "model": "gpt-4",
            "messages": [{"role": "user", "content": "Hi"}],
            "temperature": 0.7,
            "max_tokens": 2000,
        }
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_chat_missing_content(self, llm_client):
        """Test a response without choices gives empty content."""
        mock_client = create_mock_client(create_mock_response({"choices": []}))

        with patch("httpx.AsyncClient", return_value=mock_client):
            completion = await llm_client.chat([{"role": "user", "content": "Hi"}])

        assert completion.content == ""
        assert completion.usage is None

    @pytest.mark.asyncio
    async def test_chat_upstream_error(self, llm_client):
        """Test a non-2xx status raises UpstreamError with the body's message."""
        body = {"error": {"message": "Rate limit reached", "type": "requests"}}
        mock_client = create_mock_client(create_mock_response(body, status_code=429))

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError) as exc_info:
                await llm_client.chat([{"role": "user", "content": "Hi"}])

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail == "Rate limit reached"
        assert str(exc_info.value) == "AI service error: 429"

    @pytest.mark.asyncio
    async def test_chat_upstream_error_without_json(self, llm_client):
        mock_client = create_mock_client(create_mock_response(ValueError("no json"), status_code=502))

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError) as exc_info:
                await llm_client.chat([{"role": "user", "content": "Hi"}])

        assert exc_info.value.detail == ""

    @pytest.mark.asyncio
    async def test_chat_success_status_with_non_json_body(self, llm_client):
        """Test a 2xx reply with an HTML body becomes an UpstreamError."""
        response = httpx.Response(200, text="<html>gateway</html>")
        mock_client = create_mock_client(response)

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamError) as exc_info:
                await llm_client.chat([{"role": "user", "content": "Hi"}])

        assert exc_info.value.status_code == 200
        assert exc_info.value.detail == "invalid JSON body"

    @pytest.mark.asyncio
    async def test_chat_network_error_propagates(self, llm_client):
        mock_client = create_mock_client(None)
        mock_client.post = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(httpx.ConnectError):
                await llm_client.chat([{"role": "user", "content": "Hi"}])

    @pytest.mark.asyncio
    async def test_missing_api_key_sends_nothing(self):
        """Test no request is made without an API key."""
        client = LLMClient(Config())

        with patch("httpx.AsyncClient") as mock_async_client:
            with pytest.raises(ConfigurationError, match="API key not configured"):
                await client.chat([{"role": "user", "content": "Hi"}])

        mock_async_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_run_action(self, llm_client):
        """Test a single-shot action returns the reply text."""
        mock_client = create_mock_client(create_mock_response(COMPLETION))

        with patch("httpx.AsyncClient", return_value=mock_client):
            result = await llm_client.run_action("enhance", {"text": "this are bad"})

        assert result == "Hello there"
        messages = mock_client.post.call_args.kwargs["json"]["messages"]
        assert messages[0]["role"] == "system"
        assert messages[1]["content"] == "Please enhance the following text:\n\nthis are bad"

    @pytest.mark.asyncio
    async def test_run_action_disabled_capability(self):
        config = Config(api_key="k", capabilities=CapabilitiesConfig(translation=False))
        client = LLMClient(config)

        with patch("httpx.AsyncClient") as mock_async_client:
            with pytest.raises(CapabilityDisabledError) as exc_info:
                await client.run_action("translate", {"text": "Hi", "target_language": "German"})

        assert exc_info.value.capability == "translation"
        mock_async_client.assert_not_called()
