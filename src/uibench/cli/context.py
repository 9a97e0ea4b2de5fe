"""Shared CLI plumbing: project config and store resolution."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from uibench.models.config import ProjectConfig, find_project_root, load_project_config
from uibench.storage.json_store import RunStore


@dataclass
class CLIContext:
    project_root: Path
    config: ProjectConfig
    store: RunStore


def load_context(data_dir: str | None = None) -> CLIContext:
    """Load uibench.yaml and open the run store it points at.

    Args:
        data_dir: Overrides the configured data directory when given.
    """
    project_root = find_project_root()
    config = load_project_config(project_root)
    if data_dir is not None:
        config = config.model_copy(update={"data_dir": data_dir})
    return CLIContext(
        project_root=project_root,
        config=config,
        store=RunStore(config.data_path(project_root)),
    )
