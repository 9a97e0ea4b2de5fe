"""Tests for uibench.adapters.openai_adapter - SDK routing.

The native HTTP path is covered in test_adapters_http.py. Here the
AsyncOpenAI client is replaced with mocks, so tests run without API keys
or network access.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from uibench.adapters.base import RunRequest, TokenUsage
from uibench.adapters.openai_adapter import OpenAIAdapter
from uibench.errors import UpstreamError


def _request(**overrides):
    fields = {"provider": "openai", "model": "gpt-4o", "prompt": "Build a page", "api_key": "sk-test"}
    fields.update(overrides)
    return RunRequest(**fields)


def _chunk(content=None, usage=None, with_choice=True):
    choices = [SimpleNamespace(delta=SimpleNamespace(content=content))] if with_choice else []
    return SimpleNamespace(choices=choices, usage=usage)


class FakeSDKStream:
    """Async-iterable, async-context-managed stand-in for AsyncStream."""

    def __init__(self, chunks):
        self._chunks = chunks
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.closed = True

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for chunk in self._chunks:
            yield chunk


def _sdk_adapter(create: AsyncMock) -> OpenAIAdapter:
    adapter = OpenAIAdapter("sk-test", use_sdk=True)
    client = MagicMock()
    client.chat.completions.create = create
    client.close = AsyncMock()
    adapter._sdk_client = client
    return adapter


def _status_error(status: int, text: str) -> openai.APIStatusError:
    response = httpx.Response(
        status, text=text, request=httpx.Request("POST", OpenAIAdapter.endpoint)
    )
    return openai.APIStatusError(text, response=response, body=None)


class TestOpenAIPayload:
    """Payload shaping for the native path."""

    def test_stream_payload_requests_usage(self):
        """Streaming asks OpenAI to include the usage frame."""
        payload = OpenAIAdapter("sk-test").build_payload(_request(), stream=True)
        assert payload["stream_options"] == {"include_usage": True}

    def test_system_prompt_first(self):
        """System prompt leads the message list."""
        messages = OpenAIAdapter("sk-test").build_messages(_request(system_prompt="sys"))
        assert messages == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "Build a page"},
        ]


class TestOpenAISDKStream:
    """Streaming through the AsyncOpenAI client."""

    @pytest.mark.asyncio
    async def test_stream_relays_deltas_and_reads_usage_after_drain(self):
        """Deltas arrive in order and usage comes from the final chunk."""
        sdk_stream = FakeSDKStream(
            [
                _chunk("Hi"),
                _chunk(None),
                _chunk(" there"),
                _chunk(
                    with_choice=False,
                    usage=SimpleNamespace(
                        model_dump=lambda: {"prompt_tokens": 5, "completion_tokens": 2}
                    ),
                ),
            ]
        )
        create = AsyncMock(return_value=sdk_stream)
        adapter = _sdk_adapter(create)

        deltas: list[str] = []
        result = await adapter.stream(_request(max_tokens=100), deltas.append)

        assert deltas == ["Hi", " there"]
        assert result.text == "Hi there"
        assert result.usage == TokenUsage(input_tokens=5, output_tokens=2, total_tokens=7)
        assert sdk_stream.closed is True

        kwargs = create.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["stream_options"] == {"include_usage": True}
        assert kwargs["max_tokens"] == 100
        assert kwargs["model"] == "gpt-4o"

    @pytest.mark.asyncio
    async def test_stream_status_error_translated(self):
        """APIStatusError becomes UpstreamError with status and body."""
        adapter = _sdk_adapter(AsyncMock(side_effect=_status_error(429, "rate limited")))

        with pytest.raises(UpstreamError) as exc_info:
            await adapter.stream(_request(), lambda delta: None)
        assert exc_info.value.status == 429
        assert exc_info.value.body == "rate limited"


class TestOpenAISDKComplete:
    """Single-shot requests through the AsyncOpenAI client."""

    @pytest.mark.asyncio
    async def test_complete_via_sdk(self):
        """Content, dumped response, and usage are returned."""
        response = MagicMock()
        response.choices = [SimpleNamespace(message=SimpleNamespace(content="<p>ok</p>"))]
        response.usage = SimpleNamespace(
            model_dump=lambda: {"prompt_tokens": 2, "completion_tokens": 3, "total_tokens": 5}
        )
        response.model_dump.return_value = {"id": "chatcmpl-1"}
        adapter = _sdk_adapter(AsyncMock(return_value=response))

        result = await adapter.complete(_request())

        assert result.text == "<p>ok</p>"
        assert result.raw_response == {"id": "chatcmpl-1"}
        assert result.usage == TokenUsage(input_tokens=2, output_tokens=3, total_tokens=5)

    @pytest.mark.asyncio
    async def test_complete_status_error_translated(self):
        """A 401 from the SDK surfaces as UpstreamError."""
        adapter = _sdk_adapter(AsyncMock(side_effect=_status_error(401, "bad key")))
        with pytest.raises(UpstreamError) as exc_info:
            await adapter.complete(_request())
        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_aclose_closes_sdk_client(self):
        """aclose() releases the SDK client."""
        adapter = _sdk_adapter(AsyncMock())
        client = adapter._sdk_client
        await adapter.aclose()
        client.close.assert_awaited_once()
        assert adapter._sdk_client is None

    def test_sdk_client_created_lazily(self):
        """AsyncOpenAI is built on first use with the adapter's key."""
        adapter = OpenAIAdapter("sk-test", use_sdk=True, timeout=30.0)
        with patch("openai.AsyncOpenAI") as mock_cls:
            adapter._get_sdk_client()
            adapter._get_sdk_client()
        mock_cls.assert_called_once_with(api_key="sk-test", timeout=30.0)
