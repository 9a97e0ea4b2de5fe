"""Anthropic adapter.

Anthropic differs from the OpenAI-style providers in every dimension the
adapter abstracts: a custom ``x-api-key`` header plus a version header,
the system prompt as a top-level field, typed stream events, and usage
split between the ``message_start`` and ``message_delta`` events.
With ``use_sdk=True`` requests go through the official ``anthropic``
async SDK instead.
"""

from __future__ import annotations

import json
from typing import Any

from uibench.adapters.base import (
    CompletionResult,
    OnDelta,
    RunRequest,
    TokenUsage,
    deliver_delta,
)
from uibench.adapters.http_adapter import DEFAULT_TIMEOUT_SECONDS, HTTPAdapter
from uibench.errors import UpstreamError

ANTHROPIC_VERSION = "2023-06-01"

# The messages API rejects requests without max_tokens.
DEFAULT_MAX_TOKENS = 4096


class AnthropicAdapter(HTTPAdapter):
    """Adapter for the Anthropic messages API."""

    provider = "anthropic"
    endpoint = "https://api.anthropic.com/v1/messages"
    models_endpoint = "https://api.anthropic.com/v1/models"

    def __init__(
        self,
        api_key: str,
        *,
        use_sdk: bool = False,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        **kwargs: Any,
    ) -> None:
        super().__init__(api_key, timeout=timeout, **kwargs)
        self.use_sdk = use_sdk
        self._sdk_client: Any = None

    def build_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def build_messages(self, request: RunRequest) -> list[dict[str, Any]]:
        # System prompt travels in the top-level "system" field instead.
        return [{"role": "user", "content": request.prompt}]

    def build_payload(self, request: RunRequest, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": self.build_messages(request),
            "temperature": request.temperature,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if request.system_prompt:
            payload["system"] = request.system_prompt
        if stream:
            payload["stream"] = True
        return payload

    def extract_text(self, data: dict[str, Any]) -> str:
        content = data.get("content")
        if not isinstance(content, list):
            return ""
        return "".join(
            block.get("text") or "" for block in content if isinstance(block, dict)
        )

    def extract_delta(self, event: dict[str, Any]) -> str | None:
        if event.get("type") != "content_block_delta":
            return None
        delta = event.get("delta") or {}
        if delta.get("type") != "text_delta":
            return None
        text = delta.get("text")
        return text if isinstance(text, str) and text else None

    def accumulate_usage(
        self, event: dict[str, Any], usage: TokenUsage | None
    ) -> TokenUsage | None:
        """Combine input tokens from message_start with output from message_delta."""
        event_type = event.get("type")
        if event_type == "message_start":
            message = event.get("message") or {}
            return TokenUsage.from_provider(message.get("usage")) or usage
        if event_type == "message_delta":
            delta_usage = event.get("usage") or {}
            output = delta_usage.get("output_tokens")
            if not isinstance(output, int):
                return usage
            input_tokens = delta_usage.get("input_tokens")
            if not isinstance(input_tokens, int):
                input_tokens = usage.input_tokens if usage is not None else 0
            return TokenUsage(
                input_tokens=input_tokens,
                output_tokens=output,
                total_tokens=input_tokens + output,
            )
        return usage

    def check_event(self, event: dict[str, Any], status: int) -> None:
        if event.get("type") == "error":
            raise UpstreamError(status, json.dumps(event), self.provider)

    # -- SDK routing --

    def _get_sdk_client(self) -> Any:
        """Lazily initialize and return the AsyncAnthropic client."""
        if self._sdk_client is None:
            from anthropic import AsyncAnthropic

            self._sdk_client = AsyncAnthropic(api_key=self._api_key, timeout=self._timeout)
        return self._sdk_client

    def _sdk_kwargs(self, request: RunRequest) -> dict[str, Any]:
        return self.build_payload(request, stream=False)

    async def complete(self, request: RunRequest) -> CompletionResult:
        if not self.use_sdk:
            return await super().complete(request)

        from anthropic import APIStatusError

        client = self._get_sdk_client()
        try:
            response = await client.messages.create(**self._sdk_kwargs(request))
        except APIStatusError as exc:
            raise UpstreamError(exc.status_code, exc.response.text, self.provider) from exc

        text = "".join(
            block.text for block in response.content if block.type == "text"
        )
        return CompletionResult(
            text=text,
            raw_response=response.model_dump(),
            usage=TokenUsage.from_provider(response.usage),
        )

    async def stream(self, request: RunRequest, on_delta: OnDelta) -> CompletionResult:
        if not self.use_sdk:
            return await super().stream(request, on_delta)

        from anthropic import APIStatusError

        client = self._get_sdk_client()
        parts: list[str] = []
        try:
            async with client.messages.stream(**self._sdk_kwargs(request)) as sdk_stream:
                async for delta in sdk_stream.text_stream:
                    if delta:
                        parts.append(delta)
                        await deliver_delta(on_delta, delta)
                # Only valid once text_stream is exhausted.
                final_message = await sdk_stream.get_final_message()
        except APIStatusError as exc:
            raise UpstreamError(exc.status_code, exc.response.text, self.provider) from exc

        text = "".join(parts)
        usage = TokenUsage.from_provider(getattr(final_message, "usage", None))
        return CompletionResult(text=text, raw_response={"text": text}, usage=usage)

    async def aclose(self) -> None:
        await super().aclose()
        if self._sdk_client is not None:
            await self._sdk_client.close()
            self._sdk_client = None
