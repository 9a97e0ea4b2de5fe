"""Execution: stream aggregation, artifact extraction, and run orchestration."""

from uibench.execution.aggregator import AggregateResult, StreamAggregator
from uibench.execution.extraction import extract_html
from uibench.execution.runner import BenchRunner, RunOutcome, build_request

__all__ = [
    "AggregateResult",
    "BenchRunner",
    "RunOutcome",
    "StreamAggregator",
    "build_request",
    "extract_html",
]
