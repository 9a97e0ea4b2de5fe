"""OpenAI adapter.

Speaks the chat completions API natively over HTTP by default. With
``use_sdk=True`` requests are routed through the official ``openai``
async SDK instead; the SDK stream is drained to completion before usage
is read.
"""

from __future__ import annotations

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


class OpenAIAdapter(HTTPAdapter):
    """Adapter for the OpenAI chat completions API."""

    provider = "openai"
    endpoint = "https://api.openai.com/v1/chat/completions"
    models_endpoint = "https://api.openai.com/v1/models"

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

    def build_payload(self, request: RunRequest, stream: bool) -> dict[str, Any]:
        payload = super().build_payload(request, stream)
        if stream:
            # Without this OpenAI never sends a usage frame.
            payload["stream_options"] = {"include_usage": True}
        return payload

    def _get_sdk_client(self) -> Any:
        """Lazily initialize and return the AsyncOpenAI client."""
        if self._sdk_client is None:
            from openai import AsyncOpenAI

            self._sdk_client = AsyncOpenAI(api_key=self._api_key, timeout=self._timeout)
        return self._sdk_client

    def _sdk_kwargs(self, request: RunRequest) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": self.build_messages(request),
            "temperature": request.temperature,
        }
        if request.max_tokens:
            kwargs["max_tokens"] = request.max_tokens
        return kwargs

    async def complete(self, request: RunRequest) -> CompletionResult:
        if not self.use_sdk:
            return await super().complete(request)

        from openai import APIStatusError

        client = self._get_sdk_client()
        try:
            response = await client.chat.completions.create(**self._sdk_kwargs(request))
        except APIStatusError as exc:
            raise UpstreamError(exc.status_code, exc.response.text, self.provider) from exc

        content = response.choices[0].message.content if response.choices else None
        return CompletionResult(
            text=content or "",
            raw_response=response.model_dump(),
            usage=TokenUsage.from_provider(response.usage),
        )

    async def stream(self, request: RunRequest, on_delta: OnDelta) -> CompletionResult:
        if not self.use_sdk:
            return await super().stream(request, on_delta)

        from openai import APIStatusError

        client = self._get_sdk_client()
        parts: list[str] = []
        usage: TokenUsage | None = None
        try:
            sdk_stream = await client.chat.completions.create(
                **self._sdk_kwargs(request),
                stream=True,
                stream_options={"include_usage": True},
            )
            async with sdk_stream:
                async for chunk in sdk_stream:
                    if chunk.choices:
                        delta = chunk.choices[0].delta.content
                        if delta:
                            parts.append(delta)
                            await deliver_delta(on_delta, delta)
                    if chunk.usage is not None:
                        usage = TokenUsage.from_provider(chunk.usage)
        except APIStatusError as exc:
            raise UpstreamError(exc.status_code, exc.response.text, self.provider) from exc

        text = "".join(parts)
        return CompletionResult(text=text, raw_response={"text": text}, usage=usage)

    async def aclose(self) -> None:
        await super().aclose()
        if self._sdk_client is not None:
            await self._sdk_client.close()
            self._sdk_client = None
