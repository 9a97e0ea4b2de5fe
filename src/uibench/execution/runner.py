"""BenchRunner: sends one prompt to one provider and persists the run.

Ties the pieces together: resolve an adapter, drive it through the
StreamAggregator (relaying deltas to the caller), extract the HTML
artifact, and commit the run to the RunStore. A run is persisted only
after the adapter call has fully succeeded; failures, timeouts, and
cancellations leave nothing on disk.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Collection, Mapping
from dataclasses import dataclass
from typing import Any

from uibench.adapters.base import DEFAULT_TEMPERATURE, BaseAdapter, OnDelta, RunRequest
from uibench.adapters.http_adapter import DEFAULT_TIMEOUT_SECONDS
from uibench.adapters.registry import BUILTIN_ADAPTERS, get_adapter
from uibench.errors import UnsupportedProviderError
from uibench.execution.aggregator import AggregateResult, StreamAggregator
from uibench.execution.extraction import extract_html
from uibench.models.config import ProjectConfig, resolve_api_key
from uibench.models.run import BenchmarkTag, RunEntry, RunParams, ScoreSummary, TokenCounts
from uibench.models.score import ScoreRecord
from uibench.storage.json_store import RunStore

logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """A committed run and the artifact extracted from it."""

    entry: RunEntry
    html: str
    text: str


def build_request(
    provider: str,
    model: str,
    prompt: str,
    *,
    system_prompt: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    benchmark: BenchmarkTag | Mapping[str, Any] | None = None,
    api_key: str | None = None,
    api_keys: Mapping[str, str] | None = None,
    env: Mapping[str, str] | None = None,
    config: ProjectConfig | None = None,
) -> RunRequest:
    """Validate inputs and build a RunRequest with a resolved API key.

    Raises:
        UnsupportedProviderError: If the provider is not a builtin id or dotted path.
        ValueError: If model or prompt is empty.
        MissingCredentialError: If no API key can be resolved.
    """
    if provider not in BUILTIN_ADAPTERS and "." not in provider:
        raise UnsupportedProviderError(provider, sorted(BUILTIN_ADAPTERS))
    if not model or not prompt:
        raise ValueError("Model and prompt are required")

    if temperature is None:
        temperature = config.default_temperature if config else DEFAULT_TEMPERATURE
    if benchmark is not None and not isinstance(benchmark, BenchmarkTag):
        benchmark = BenchmarkTag.model_validate(benchmark)

    return RunRequest(
        provider=provider,
        model=model,
        prompt=prompt,
        api_key=resolve_api_key(provider, api_key, api_keys, env=env, config=config),
        system_prompt=system_prompt or None,
        temperature=temperature,
        max_tokens=max_tokens or None,
        benchmark=benchmark,
    )


class BenchRunner:
    """Executes benchmark runs and exposes the run store operations.

    Each run gets a fresh adapter, closed when the run ends. Disk work is
    moved off the event loop with asyncio.to_thread.
    """

    def __init__(
        self,
        store: RunStore,
        *,
        adapter_factory: Callable[[RunRequest], BaseAdapter] | None = None,
        max_duration_seconds: float | None = None,
        request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        sdk_providers: Collection[str] = (),
    ) -> None:
        self.store = store
        self._adapter_factory = adapter_factory or self._default_adapter
        self._max_duration_seconds = max_duration_seconds
        self._request_timeout_seconds = request_timeout_seconds
        self._sdk_providers = frozenset(sdk_providers)

    @classmethod
    def from_config(cls, config: ProjectConfig, store: RunStore) -> BenchRunner:
        return cls(
            store,
            max_duration_seconds=config.max_duration_seconds,
            request_timeout_seconds=config.request_timeout_seconds,
            sdk_providers=config.use_sdk,
        )

    def _default_adapter(self, request: RunRequest) -> BaseAdapter:
        options: dict[str, Any] = {"timeout": self._request_timeout_seconds}
        if request.provider in self._sdk_providers:
            options["use_sdk"] = True
        return get_adapter(request.provider, request.api_key, **options)

    # -- Runs --

    async def run_once(self, request: RunRequest) -> RunOutcome:
        """Send a single-shot request and persist the run.

        Raises:
            UpstreamError: On a non-2xx provider response.
            TimeoutError: If max_duration_seconds elapses first.
            StorageError: If the run cannot be persisted.
        """
        async with self._adapter_factory(request) as adapter:
            result = await self._bounded(StreamAggregator(adapter).complete(request))
        return await self._persist(request, result)

    async def run_streaming(self, request: RunRequest, on_delta: OnDelta) -> RunOutcome:
        """Stream a request, relaying deltas to on_delta, and persist the run.

        on_delta runs on the event loop between frame reads; a slow sink
        stalls stream consumption.

        Raises:
            UpstreamError: On a non-2xx response or an in-stream error.
            TimeoutError: If max_duration_seconds elapses first.
            StorageError: If the run cannot be persisted.
        """
        logger.info(
            "Starting stream: provider=%s model=%s benchmark=%s",
            request.provider,
            request.model,
            request.benchmark.title if request.benchmark else None,
        )
        async with self._adapter_factory(request) as adapter:
            result = await self._bounded(StreamAggregator(adapter).run(request, on_delta))
        return await self._persist(request, result)

    async def _bounded(self, operation: Awaitable[AggregateResult]) -> AggregateResult:
        if self._max_duration_seconds is None:
            return await operation
        async with asyncio.timeout(self._max_duration_seconds):
            return await operation

    async def _persist(self, request: RunRequest, result: AggregateResult) -> RunOutcome:
        html = extract_html(result.text)
        usage = result.usage
        token_usage = (
            TokenCounts(
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                total_tokens=usage.total_tokens,
            )
            if usage is not None
            else None
        )
        entry = await asyncio.to_thread(
            self.store.create_run,
            provider=request.provider,
            model=request.model,
            prompt=request.prompt,
            system_prompt=request.system_prompt,
            response=result.raw_response if result.raw_response is not None else {"text": result.text},
            html=html,
            params=RunParams(temperature=request.temperature, max_tokens=request.max_tokens),
            benchmark=request.benchmark,
            latency_ms=result.latency_ms,
            token_usage=token_usage,
        )
        logger.info(
            "Completed run %s in %dms, text length %d",
            entry.id,
            result.latency_ms,
            len(result.text),
        )
        return RunOutcome(entry=entry, html=html, text=result.text)

    # -- Store operations --

    async def list_runs(self) -> list[RunEntry]:
        return await asyncio.to_thread(self.store.list_runs)

    async def get_artifact(self, run_id: str) -> str | None:
        return await asyncio.to_thread(self.store.get_artifact, run_id)

    async def attach_score(
        self, run_id: str, score: ScoreRecord | Mapping[str, Any]
    ) -> ScoreSummary | None:
        return await asyncio.to_thread(self.store.attach_score, run_id, score)

    async def delete_run(self, run_id: str) -> RunEntry | None:
        return await asyncio.to_thread(self.store.delete_run, run_id)
