"""Native HTTP adapter for OpenAI-compatible chat completion endpoints.

Talks to providers directly over httpx instead of an SDK so the raw
event stream, usage frames, and error bodies are observed exactly as the
provider sends them. Provider variants override the endpoint, headers,
message envelope, and event extraction hooks.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from uibench.adapters.base import (
    BaseAdapter,
    CompletionResult,
    OnDelta,
    RunRequest,
    TokenUsage,
    deliver_delta,
)
from uibench.adapters.frames import BLANK_LINE, iter_sse_payloads
from uibench.errors import MissingCredentialError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 600.0
CONNECT_TIMEOUT_SECONDS = 10.0


def model_id_from(item: Any, *keys: str) -> str | None:
    """Pull a model identifier out of a string or a dict keyed by any of keys."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in keys:
            value = item.get(key)
            if value:
                return str(value)
    return None


class HTTPAdapter(BaseAdapter):
    """Adapter for endpoints speaking the OpenAI chat completion format.

    Uses a lazily created httpx.AsyncClient unless one is injected.
    Injected clients are left open by aclose(); the caller owns them.
    """

    endpoint: str = ""
    models_endpoint: str | None = None
    frame_separator: str = BLANK_LINE
    # When False, list_models() returns [] on a non-2xx response.
    strict_model_listing: bool = True

    def __init__(
        self,
        api_key: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise MissingCredentialError(self.provider)
        self._api_key = api_key
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        """Lazily initialize and return the httpx client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=CONNECT_TIMEOUT_SECONDS)
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # -- Request shaping hooks --

    def build_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    def build_messages(self, request: RunRequest) -> list[dict[str, Any]]:
        """Put the system prompt, when given, first in the message list."""
        messages: list[dict[str, Any]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        return messages

    def build_payload(self, request: RunRequest, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": self.build_messages(request),
            "temperature": request.temperature,
        }
        if request.max_tokens:
            payload["max_tokens"] = request.max_tokens
        if stream:
            payload["stream"] = True
        return payload

    # -- Response extraction hooks --

    def extract_text(self, data: dict[str, Any]) -> str:
        choices = data.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        content = message.get("content")
        return content if isinstance(content, str) else ""

    def extract_delta(self, event: dict[str, Any]) -> str | None:
        choices = event.get("choices") or []
        if not choices:
            return None
        delta = choices[0].get("delta") or {}
        content = delta.get("content")
        if isinstance(content, str) and content:
            return content
        return None

    def extract_usage(self, data: dict[str, Any]) -> TokenUsage | None:
        return TokenUsage.from_provider(data.get("usage"))

    def accumulate_usage(
        self, event: dict[str, Any], usage: TokenUsage | None
    ) -> TokenUsage | None:
        """Fold a stream event into the usage captured so far.

        Events without usage keep what has already been captured.
        """
        return self.extract_usage(event) or usage

    def check_event(self, event: dict[str, Any], status: int) -> None:
        """Raise UpstreamError for an error reported inside the stream."""
        if isinstance(event.get("error"), dict):
            raise UpstreamError(status, json.dumps(event), self.provider)

    def parse_model_ids(self, data: Any) -> list[str]:
        raw = data.get("data") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            return []
        return [item["id"] for item in raw if isinstance(item, dict) and item.get("id")]

    def _parse_body(self, response: httpx.Response) -> Any:
        """Decode a JSON body; a 2xx body that is not JSON is an upstream failure."""
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(response.status_code, response.text, self.provider) from exc

    # -- Operations --

    async def complete(self, request: RunRequest) -> CompletionResult:
        """Send a single non-streaming request.

        Returns:
            CompletionResult with the full response body as raw_response.

        Raises:
            UpstreamError: If the provider answers with a non-2xx status or
                a body that is not a JSON object.
        """
        client = self._get_client()
        response = await client.post(
            self.endpoint,
            headers=self.build_headers(),
            json=self.build_payload(request, stream=False),
        )
        if not response.is_success:
            raise UpstreamError(response.status_code, response.text, self.provider)

        data = self._parse_body(response)
        if not isinstance(data, dict):
            raise UpstreamError(response.status_code, response.text, self.provider)
        return CompletionResult(
            text=self.extract_text(data),
            raw_response=data,
            usage=self.extract_usage(data),
        )

    async def stream(self, request: RunRequest, on_delta: OnDelta) -> CompletionResult:
        """Open a streaming request and relay every text delta.

        The response is consumed inside ``client.stream()`` so the
        connection is released on success, error, and cancellation.

        Raises:
            UpstreamError: On a non-2xx status or an in-stream error event.
        """
        client = self._get_client()
        parts: list[str] = []
        usage: TokenUsage | None = None

        async with client.stream(
            "POST",
            self.endpoint,
            headers=self.build_headers(),
            json=self.build_payload(request, stream=True),
        ) as response:
            if not response.is_success:
                body = await response.aread()
                raise UpstreamError(
                    response.status_code,
                    body.decode("utf-8", errors="replace"),
                    self.provider,
                )

            async for event in iter_sse_payloads(
                response.aiter_bytes(), self.frame_separator
            ):
                self.check_event(event, response.status_code)
                delta = self.extract_delta(event)
                if delta:
                    parts.append(delta)
                    await deliver_delta(on_delta, delta)
                usage = self.accumulate_usage(event, usage)

        text = "".join(parts)
        logger.debug(
            "%s stream finished: %d deltas, %d chars", self.provider, len(parts), len(text)
        )
        return CompletionResult(text=text, raw_response={"text": text}, usage=usage)

    async def list_models(self) -> list[str]:
        """Fetch model identifiers from the provider's models endpoint.

        Raises:
            UpstreamError: On a non-2xx status when strict_model_listing is set.
        """
        if not self.models_endpoint:
            return []
        client = self._get_client()
        response = await client.get(self.models_endpoint, headers=self.build_headers())
        if not response.is_success:
            if self.strict_model_listing:
                raise UpstreamError(response.status_code, response.text, self.provider)
            logger.info(
                "%s model listing failed with status %d", self.provider, response.status_code
            )
            return []
        return self.parse_model_ids(self._parse_body(response))
