"""BaseAdapter ABC and the request/result dataclasses shared by providers.

Every provider adapter (native HTTP or SDK-routed) subclasses BaseAdapter
and implements complete() and stream(). The dataclasses here are the
uniform contract that flows from adapters into the aggregator and runner.

These are plain dataclasses (not Pydantic) to avoid overhead in the
hot path of stream consumption.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from uibench.models.run import BenchmarkTag

DEFAULT_TEMPERATURE = 0.7

# Sink for streamed text. May return an awaitable, which is awaited before
# the next frame is read.
OnDelta = Callable[[str], Any]


@dataclass(frozen=True)
class RunRequest:
    """A single prompt to send to one provider/model.

    The API key is resolved by the caller before construction; adapters
    never look it up themselves.
    """

    provider: str
    model: str
    prompt: str
    api_key: str
    system_prompt: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int | None = None
    benchmark: BenchmarkTag | None = None

    def __repr__(self) -> str:
        return (
            f"RunRequest(provider={self.provider!r}, model={self.model!r}, "
            f"prompt={len(self.prompt)} chars, temperature={self.temperature}, "
            f"max_tokens={self.max_tokens})"
        )


@dataclass
class TokenUsage:
    """Token usage normalized to one canonical input/output pair."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_provider(cls, raw: Any) -> TokenUsage | None:
        """Normalize a provider usage payload.

        Accepts both the ``prompt_tokens``/``completion_tokens`` naming and
        the ``input_tokens``/``output_tokens`` naming, as a mapping or as an
        SDK object exposing ``model_dump()``.

        Returns:
            TokenUsage, or None if the payload carries no token counts.
        """
        if raw is None:
            return None
        if not isinstance(raw, Mapping):
            dump = getattr(raw, "model_dump", None)
            if dump is None:
                return None
            raw = dump()
            if not isinstance(raw, Mapping):
                return None

        input_tokens = _first_int(raw, "input_tokens", "prompt_tokens")
        output_tokens = _first_int(raw, "output_tokens", "completion_tokens")
        if input_tokens is None and output_tokens is None:
            return None

        input_tokens = input_tokens or 0
        output_tokens = output_tokens or 0
        total = _first_int(raw, "total_tokens")
        return cls(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total if total is not None else input_tokens + output_tokens,
        )


def _first_int(raw: Mapping[str, Any], *keys: str) -> int | None:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
    return None


@dataclass
class CompletionResult:
    """Full text, raw provider payload, and normalized usage of one call."""

    text: str
    raw_response: Any
    usage: TokenUsage | None = None


async def deliver_delta(on_delta: OnDelta, delta: str) -> None:
    """Hand one delta to the sink, awaiting it if it is a coroutine."""
    result = on_delta(delta)
    if inspect.isawaitable(result):
        await result


class BaseAdapter(ABC):
    """Abstract base class for all provider adapters.

    Subclasses implement complete() for single-shot calls and stream() for
    incremental output. ``supports_streaming`` is a capability flag: when
    False, callers drive the adapter through complete() instead.
    """

    provider: str = "custom"
    supports_streaming: bool = True

    @abstractmethod
    async def complete(self, request: RunRequest) -> CompletionResult:
        """Send one request and return the full completion.

        Raises:
            UpstreamError: On a non-2xx provider response.
        """
        ...

    @abstractmethod
    async def stream(self, request: RunRequest, on_delta: OnDelta) -> CompletionResult:
        """Stream a completion, calling on_delta for every text fragment.

        on_delta is invoked in arrival order, once per non-empty fragment,
        before the next frame is read. Usage is None when the provider
        never reports it.

        Raises:
            UpstreamError: On a non-2xx provider response.
        """
        ...

    async def list_models(self) -> list[str]:
        """Return model identifiers offered by the provider."""
        return []

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""

    async def __aenter__(self) -> BaseAdapter:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def provider_name(self) -> str:
        """Return the provider identifier for this adapter."""
        return self.provider
