"""uibench data models - re-exports all public model classes."""

from uibench.models.config import ProjectConfig, load_project_config, resolve_api_key
from uibench.models.run import (
    BenchmarkTag,
    PromptRecord,
    RunEntry,
    RunMeta,
    RunParams,
    ScoreSummary,
    TokenCounts,
)
from uibench.models.score import ScoreRecord

__all__ = [
    "BenchmarkTag",
    "ProjectConfig",
    "PromptRecord",
    "RunEntry",
    "RunMeta",
    "RunParams",
    "ScoreRecord",
    "ScoreSummary",
    "TokenCounts",
    "load_project_config",
    "resolve_api_key",
]
