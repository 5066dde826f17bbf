"""Unit tests for the completion client."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from conftest import completion_envelope
from dayplanner.core.config import ConnectionConfig, LLMConfig
from dayplanner.core.exceptions import (
    AIError,
    CompletionTimeoutError,
    InvalidResponseError,
    NotConnectedError,
    RequestFailedError,
)
from dayplanner.services.llm import CompletionClient


def local_client(**overrides) -> CompletionClient:
    config = LLMConfig(
        provider="local",
        base_url="http://localhost:1234/",
        local_model="test-model",
        openai_api_key="",
        **overrides,
    )
    return CompletionClient(config=config, connection=ConnectionConfig(probe_timeout=5, poll_interval=30))


def openai_client(api_key: str = "sk-test") -> CompletionClient:
    config = LLMConfig(provider="openai", openai_model="gpt-4o-mini", openai_api_key=api_key)
    return CompletionClient(config=config, connection=ConnectionConfig(probe_timeout=5, poll_interval=30))


def mock_response(status_code: int = 200, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = str(body)
    response.json.return_value = body
    return response


def patched_async_client(method: str, result=None, error: Exception = None):
    """Patch httpx.AsyncClient so ``method`` returns ``result`` or raises ``error``."""
    patcher = patch("httpx.AsyncClient")
    mock_client_class = patcher.start()
    mock_client = AsyncMock()
    call = AsyncMock(side_effect=error) if error else AsyncMock(return_value=result)
    setattr(mock_client, method, call)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    # A falsy __aexit__ lets errors raised inside ``async with`` propagate
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_class.return_value = mock_client
    return patcher, mock_client_class, mock_client


class TestClientConfiguration:

    def test_local_urls(self):
        client = local_client()
        assert client.completions_url == "http://localhost:1234/v1/chat/completions"
        assert client.models_url == "http://localhost:1234/v1/models"
        assert client.model_name == "test-model"

    def test_openai_urls(self):
        client = openai_client()
        assert client.completions_url == "https://api.openai.com/v1/chat/completions"
        assert client.model_name == "gpt-4o-mini"

    def test_local_has_no_auth_header(self):
        assert "Authorization" not in local_client()._headers()

    def test_openai_bearer_header(self):
        assert openai_client("sk-abc")._headers()["Authorization"] == "Bearer sk-abc"

    def test_payload_shape(self):
        payload = local_client().build_payload("plan my day")
        assert payload["model"] == "test-model"
        assert payload["stream"] is False
        assert payload["temperature"] == 0.7
        assert payload["max_tokens"] == 1000
        assert [m["role"] for m in payload["messages"]] == ["system", "user"]
        assert payload["messages"][1]["content"] == "plan my day"
        assert "valid JSON" in payload["messages"][0]["content"]


@pytest.mark.asyncio
class TestComplete:

    async def test_returns_content(self):
        patcher, _, mock_client = patched_async_client(
            "post", mock_response(200, completion_envelope('{"response": "ok"}'))
        )
        try:
            result = await local_client().complete("hello")
        finally:
            patcher.stop()

        assert result == '{"response": "ok"}'
        args, kwargs = mock_client.post.call_args
        assert args[0] == "http://localhost:1234/v1/chat/completions"
        assert kwargs["json"]["messages"][1]["content"] == "hello"

    async def test_null_content_is_empty_string(self):
        patcher, _, _ = patched_async_client("post", mock_response(200, completion_envelope(None)))
        try:
            assert await local_client().complete("hello") == ""
        finally:
            patcher.stop()

    async def test_openai_without_key_makes_no_request(self):
        patcher, mock_client_class, _ = patched_async_client("post", mock_response(200, {}))
        try:
            with pytest.raises(NotConnectedError):
                await openai_client(api_key="").complete("hello")
        finally:
            patcher.stop()
        mock_client_class.assert_not_called()

    @pytest.mark.parametrize("status_code", [401, 403, 404])
    async def test_auth_and_routing_errors_are_not_connected(self, status_code):
        patcher, _, _ = patched_async_client("post", mock_response(status_code, {"error": "nope"}))
        try:
            with pytest.raises(NotConnectedError) as exc_info:
                await local_client().complete("hello")
        finally:
            patcher.stop()
        assert exc_info.value.status_code == status_code

    async def test_server_error_is_request_failed(self):
        patcher, _, _ = patched_async_client("post", mock_response(500, {"error": "boom"}))
        try:
            with pytest.raises(RequestFailedError) as exc_info:
                await local_client().complete("hello")
        finally:
            patcher.stop()
        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value, AIError)

    async def test_connect_error_is_not_connected(self):
        patcher, _, _ = patched_async_client("post", error=httpx.ConnectError("connection refused"))
        try:
            with pytest.raises(NotConnectedError):
                await local_client().complete("hello")
        finally:
            patcher.stop()

    async def test_request_timeout(self):
        patcher, _, _ = patched_async_client("post", error=httpx.ReadTimeout("timed out"))
        try:
            with pytest.raises(CompletionTimeoutError):
                await local_client().complete("hello")
        finally:
            patcher.stop()

    async def test_transport_error_is_request_failed(self):
        patcher, _, _ = patched_async_client("post", error=httpx.RemoteProtocolError("peer closed connection"))
        try:
            with pytest.raises(RequestFailedError):
                await local_client().complete("hello")
        finally:
            patcher.stop()

    async def test_resource_timeout(self):
        client = local_client(resource_timeout=0.01)

        async def slow_post(prompt, system_prompt):
            await asyncio.sleep(1)
            return "late"

        with patch.object(client, "_post", side_effect=slow_post):
            with pytest.raises(CompletionTimeoutError):
                await client.complete("hello")

    async def test_body_not_json(self):
        response = mock_response(200)
        response.json.side_effect = ValueError("Expecting value")
        patcher, _, _ = patched_async_client("post", response)
        try:
            with pytest.raises(InvalidResponseError):
                await local_client().complete("hello")
        finally:
            patcher.stop()

    async def test_missing_choices(self):
        patcher, _, _ = patched_async_client("post", mock_response(200, {"choices": []}))
        try:
            with pytest.raises(InvalidResponseError):
                await local_client().complete("hello")
        finally:
            patcher.stop()


@pytest.mark.asyncio
class TestProbe:

    async def test_probe_connected(self):
        patcher, _, mock_client = patched_async_client("get", mock_response(200, {"data": []}))
        try:
            status = await local_client().probe()
        finally:
            patcher.stop()

        assert status.connected is True
        assert status.last_status_code == 200
        assert status.last_checked is not None
        assert mock_client.get.call_args[0][0] == "http://localhost:1234/v1/models"

    async def test_probe_server_error_is_disconnected(self):
        patcher, _, _ = patched_async_client("get", mock_response(500, {"error": "boom"}))
        try:
            status = await local_client().probe()
        finally:
            patcher.stop()

        assert status.connected is False
        assert status.last_status_code == 500
        assert status.last_error == "HTTP 500"

    async def test_probe_unreachable(self):
        patcher, _, _ = patched_async_client("get", error=httpx.ConnectError("connection refused"))
        try:
            status = await local_client().probe()
        finally:
            patcher.stop()

        assert status.connected is False
        assert "connection refused" in status.last_error

    async def test_probe_openai_without_key(self):
        patcher, mock_client_class, _ = patched_async_client("get", mock_response(200, {}))
        try:
            status = await openai_client(api_key="").probe()
        finally:
            patcher.stop()

        assert status.connected is False
        mock_client_class.assert_not_called()
