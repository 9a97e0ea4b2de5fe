"""Persisted run models.

These models encode the on-disk contract of the run store: the per-run
``prompt.json`` and ``meta.json`` files and the entries of ``index.json``.
JSON keys are camelCase so the files stay readable by the dashboard that
consumes them; Python attribute names stay snake_case.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BenchmarkTag(BaseModel):
    """Identifies the benchmark prompt a run was made for."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    title: str | None = None
    category: str | None = None


class RunParams(_CamelModel):
    """Generation parameters sent with the request."""

    temperature: float
    max_tokens: int | None = None


class TokenCounts(_CamelModel):
    """Normalized token usage as stored on disk."""

    input_tokens: int
    output_tokens: int
    total_tokens: int


class PromptRecord(_CamelModel):
    """Contents of a run's ``prompt.json``."""

    prompt: str
    system_prompt: str | None = None
    params: RunParams
    benchmark: BenchmarkTag | None = None


class RunMeta(_CamelModel):
    """Contents of a run's ``meta.json``."""

    id: str
    created_at: datetime
    provider: str
    model: str
    benchmark: BenchmarkTag | None = None
    latency_ms: int
    token_usage: TokenCounts | None = None
    params: RunParams
    path: str


class ScoreSummary(_CamelModel):
    """Reduced view of a score, kept on the index entry."""

    overall: int | float | None = None
    visual: int | float | None = None
    fidelity: int | float | None = None
    usability: int | float | None = None
    completeness: int | float | None = None
    correctness: int | float | None = None


class RunEntry(RunMeta):
    """One entry of ``index.json``: run metadata plus its score summary."""

    score_summary: ScoreSummary | None = None
