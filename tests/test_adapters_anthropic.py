"""Tests for uibench.adapters.anthropic_adapter.

Covers header/payload shaping, typed stream events over httpx.MockTransport,
and SDK routing with a mocked AsyncAnthropic client.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from uibench.adapters.anthropic_adapter import (
    ANTHROPIC_VERSION,
    DEFAULT_MAX_TOKENS,
    AnthropicAdapter,
)
from uibench.adapters.base import RunRequest, TokenUsage
from uibench.errors import UpstreamError


def _request(**overrides):
    fields = {
        "provider": "anthropic",
        "model": "claude-sonnet-4-5",
        "prompt": "Build a page",
        "api_key": "ak-test",
    }
    fields.update(overrides)
    return RunRequest(**fields)


def _sse(event_type: str, data: dict) -> str:
    return f"event: {event_type}\ndata: {json.dumps(data)}\n\n"


def _chunked(*chunks: str):
    async def body():
        for chunk in chunks:
            yield chunk.encode("utf-8")

    return body()


ANTHROPIC_STREAM = (
    _sse(
        "message_start",
        {"type": "message_start", "message": {"usage": {"input_tokens": 12, "output_tokens": 1}}},
    ),
    _sse("content_block_start", {"type": "content_block_start", "index": 0}),
    _sse("ping", {"type": "ping"}),
    _sse(
        "content_block_delta",
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "<div>"}},
    ),
    _sse(
        "content_block_delta",
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "hi</div>"}},
    ),
    _sse("message_delta", {"type": "message_delta", "usage": {"output_tokens": 30}}),
    _sse("message_stop", {"type": "message_stop"}),
)


class TestAnthropicShaping:
    """Headers and payload."""

    def test_headers(self):
        """x-api-key and anthropic-version replace the bearer header."""
        headers = AnthropicAdapter("ak-test").build_headers()
        assert headers["x-api-key"] == "ak-test"
        assert headers["anthropic-version"] == ANTHROPIC_VERSION
        assert "Authorization" not in headers

    def test_payload_system_top_level_and_default_max_tokens(self):
        """System prompt is a top-level field and max_tokens is always set."""
        payload = AnthropicAdapter("ak-test").build_payload(
            _request(system_prompt="Be terse"), stream=True
        )
        assert payload["system"] == "Be terse"
        assert payload["messages"] == [{"role": "user", "content": "Build a page"}]
        assert payload["max_tokens"] == DEFAULT_MAX_TOKENS
        assert payload["stream"] is True

    def test_payload_explicit_max_tokens(self):
        """A caller max_tokens overrides the default."""
        payload = AnthropicAdapter("ak-test").build_payload(_request(max_tokens=512), stream=False)
        assert payload["max_tokens"] == 512
        assert "system" not in payload
        assert "stream" not in payload


class TestAnthropicHTTP:
    """Native HTTP streaming and completion."""

    @pytest.mark.asyncio
    async def test_typed_events_and_split_usage(self):
        """Only text deltas are relayed; usage merges start and delta events."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, content=_chunked(*ANTHROPIC_STREAM))

        deltas: list[str] = []
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await AnthropicAdapter("ak-test", client=client).stream(
                _request(), deltas.append
            )

        assert deltas == ["<div>", "hi</div>"]
        assert result.text == "<div>hi</div>"
        assert result.usage == TokenUsage(input_tokens=12, output_tokens=30, total_tokens=42)
        assert captured[0].headers["x-api-key"] == "ak-test"

    @pytest.mark.asyncio
    async def test_error_event_raises(self):
        """An in-stream error event surfaces as UpstreamError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                content=_chunked(
                    _sse(
                        "error",
                        {"type": "error", "error": {"type": "overloaded_error", "message": "busy"}},
                    )
                ),
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(UpstreamError, match="overloaded_error"):
                await AnthropicAdapter("ak-test", client=client).stream(
                    _request(), lambda delta: None
                )

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self):
        """Content blocks are concatenated and usage normalized."""
        body = {
            "content": [{"type": "text", "text": "<p>a"}, {"type": "text", "text": "b</p>"}],
            "usage": {"input_tokens": 4, "output_tokens": 6},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await AnthropicAdapter("ak-test", client=client).complete(_request())

        assert result.text == "<p>ab</p>"
        assert result.raw_response == body
        assert result.usage == TokenUsage(input_tokens=4, output_tokens=6, total_tokens=10)

    def test_message_delta_without_start_keeps_zero_input(self):
        """message_delta alone still yields output tokens."""
        usage = AnthropicAdapter("ak-test").accumulate_usage(
            {"type": "message_delta", "usage": {"output_tokens": 9}}, None
        )
        assert usage == TokenUsage(input_tokens=0, output_tokens=9, total_tokens=9)


class FakeMessageStream:
    """Stand-in for the SDK's AsyncMessageStream context."""

    def __init__(self, texts, final_message):
        self._texts = texts
        self._final_message = final_message

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    @property
    def text_stream(self):
        return self._iterate()

    async def _iterate(self):
        for text in self._texts:
            yield text

    async def get_final_message(self):
        return self._final_message


def _sdk_adapter() -> AnthropicAdapter:
    adapter = AnthropicAdapter("ak-test", use_sdk=True)
    client = MagicMock()
    client.close = AsyncMock()
    adapter._sdk_client = client
    return adapter


class TestAnthropicSDK:
    """SDK routing."""

    @pytest.mark.asyncio
    async def test_sdk_stream(self):
        """text_stream deltas are relayed and usage read from the final message."""
        adapter = _sdk_adapter()
        final = SimpleNamespace(
            usage=SimpleNamespace(model_dump=lambda: {"input_tokens": 7, "output_tokens": 3})
        )
        adapter._sdk_client.messages.stream = MagicMock(
            return_value=FakeMessageStream(["<b>", "", "x</b>"], final)
        )

        deltas: list[str] = []
        result = await adapter.stream(_request(system_prompt="sys"), deltas.append)

        assert deltas == ["<b>", "x</b>"]
        assert result.text == "<b>x</b>"
        assert result.usage == TokenUsage(input_tokens=7, output_tokens=3, total_tokens=10)
        kwargs = adapter._sdk_client.messages.stream.call_args.kwargs
        assert kwargs["system"] == "sys"
        assert "stream" not in kwargs

    @pytest.mark.asyncio
    async def test_sdk_complete(self):
        """Text blocks are joined; non-text blocks are ignored."""
        adapter = _sdk_adapter()
        response = MagicMock()
        response.content = [
            SimpleNamespace(type="text", text="<i>hi"),
            SimpleNamespace(type="thinking", text="ignored"),
            SimpleNamespace(type="text", text="</i>"),
        ]
        response.usage = SimpleNamespace(
            model_dump=lambda: {"input_tokens": 1, "output_tokens": 2}
        )
        response.model_dump.return_value = {"id": "msg_1"}
        adapter._sdk_client.messages.create = AsyncMock(return_value=response)

        result = await adapter.complete(_request())

        assert result.text == "<i>hi</i>"
        assert result.raw_response == {"id": "msg_1"}
        assert result.usage == TokenUsage(input_tokens=1, output_tokens=2, total_tokens=3)

    @pytest.mark.asyncio
    async def test_sdk_status_error_translated(self):
        """APIStatusError becomes UpstreamError."""
        adapter = _sdk_adapter()
        response = httpx.Response(
            529, text="overloaded", request=httpx.Request("POST", AnthropicAdapter.endpoint)
        )
        adapter._sdk_client.messages.create = AsyncMock(
            side_effect=anthropic.APIStatusError("overloaded", response=response, body=None)
        )

        with pytest.raises(UpstreamError) as exc_info:
            await adapter.complete(_request())
        assert exc_info.value.status == 529
        assert exc_info.value.body == "overloaded"
