"""Run persistence."""

from uibench.storage.json_store import RunStore, build_run_path

__all__ = ["RunStore", "build_run_path"]
