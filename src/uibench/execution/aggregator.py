"""StreamAggregator: drives one adapter call to completion.

Relays every delta to the caller's sink in arrival order, accumulates the
full text, and measures latency from invocation to the last byte read.
Adapters without native streaming are driven through complete() and their
text is delivered as a single delta.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from uibench.adapters.base import (
    BaseAdapter,
    CompletionResult,
    OnDelta,
    RunRequest,
    TokenUsage,
    deliver_delta,
)

logger = logging.getLogger(__name__)


@dataclass
class AggregateResult:
    """Outcome of one fully consumed adapter call."""

    text: str
    raw_response: Any
    usage: TokenUsage | None
    latency_ms: int
    delta_count: int


class StreamAggregator:
    """Drives a provider adapter and relays its output.

    Errors from the adapter or the frame decoder propagate unchanged; on
    failure no partial result is returned.
    """

    def __init__(self, adapter: BaseAdapter) -> None:
        self.adapter = adapter

    async def run(self, request: RunRequest, on_delta: OnDelta | None = None) -> AggregateResult:
        """Stream the request to completion.

        Args:
            request: The run request to send.
            on_delta: Optional sink called once per non-empty delta.

        Returns:
            AggregateResult with the accumulated text and final usage.
        """
        delta_count = 0

        async def relay(delta: str) -> None:
            nonlocal delta_count
            if not delta:
                return
            delta_count += 1
            if on_delta is not None:
                await deliver_delta(on_delta, delta)

        start = time.perf_counter()
        if self.adapter.supports_streaming:
            result = await self.adapter.stream(request, relay)
        else:
            logger.debug("%s does not stream; using single-shot call", self.adapter.provider_name())
            result = await self.adapter.complete(request)
            await relay(result.text)
        latency_ms = round((time.perf_counter() - start) * 1000)

        return self._finalize(result, latency_ms, delta_count)

    async def complete(self, request: RunRequest) -> AggregateResult:
        """Run a single-shot request, timed the same way as run()."""
        start = time.perf_counter()
        result = await self.adapter.complete(request)
        latency_ms = round((time.perf_counter() - start) * 1000)
        return self._finalize(result, latency_ms, 0)

    def _finalize(
        self, result: CompletionResult, latency_ms: int, delta_count: int
    ) -> AggregateResult:
        logger.debug(
            "%s completed in %dms, %d chars",
            self.adapter.provider_name(),
            latency_ms,
            len(result.text),
        )
        return AggregateResult(
            text=result.text,
            raw_response=result.raw_response,
            usage=result.usage,
            latency_ms=latency_ms,
            delta_count=delta_count,
        )
