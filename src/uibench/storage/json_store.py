"""JSON file storage layer for benchmark run persistence.

Each run gets its own date-partitioned directory of independently
readable files; ``index.json`` lists every committed run, newest first,
and is the single source of truth for which runs exist.

Writes are atomic (write to a uniquely named .tmp, then replace) so
readers never see a partial file, and every read-modify-write of the
index holds a file lock next to it, shared by every process and thread
using the same data directory.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from uuid import uuid4

from filelock import FileLock
from pydantic import ValidationError

from uibench.errors import NotFoundError, StorageError
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

logger = logging.getLogger(__name__)

PROMPT_FILE = "prompt.json"
RESPONSE_FILE = "response.json"
META_FILE = "meta.json"
ARTIFACT_FILE = "artifact.html"
SCORE_FILE = "score.json"

# Orphan directories younger than this may belong to a create_run in flight.
ORPHAN_GRACE_SECONDS = 60.0


def _atomic_write(path: Path, content: str) -> None:
    tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
    try:
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def build_run_path(created_at: datetime, run_id: str) -> str:
    """Return the run directory relative to the store root.

    Example: ``runs/2026/03/07/<run-id>``.
    """
    return "/".join(
        [
            "runs",
            f"{created_at.year:04d}",
            f"{created_at.month:02d}",
            f"{created_at.day:02d}",
            run_id,
        ]
    )


class RunStore:
    """Persist and query benchmark runs under a data directory.

    File layout:
        data/
            index.json                    # RunEntry list, newest first
            runs/YYYY/MM/DD/{run-id}/
                prompt.json               # Prompt, system prompt, params, benchmark
                response.json             # Verbatim provider payload
                meta.json                 # RunMeta
                artifact.html             # Extracted HTML
                score.json                # Optional ScoreRecord

    A run directory without an index entry is an orphan left by a crash
    between the file writes and the index commit; see prune_orphans().
    """

    def __init__(self, root: Path | str = "data") -> None:
        self.root = Path(root)
        self.runs_dir = self.root / "runs"
        self.index_path = self.root / "index.json"
        self.lock_path = self.index_path.with_suffix(".json.lock")
        self._lock = FileLock(self.lock_path)

    def run_dir(self, entry: RunEntry) -> Path:
        """Absolute directory holding a run's files."""
        return self.root / entry.path

    # -- Create --

    def create_run(
        self,
        *,
        provider: str,
        model: str,
        prompt: str,
        response: Any,
        html: str,
        params: RunParams,
        latency_ms: int,
        token_usage: TokenCounts | None = None,
        benchmark: BenchmarkTag | None = None,
        system_prompt: str | None = None,
        created_at: datetime | None = None,
    ) -> RunEntry:
        """Write a run's files, then commit it to the index.

        The index write is the last step: if anything fails earlier the run
        never becomes visible and its directory is removed.

        Returns:
            The committed index entry (newest first in list_runs()).

        Raises:
            StorageError: If any file or the index cannot be written.
        """
        created_at = created_at or datetime.now(timezone.utc)
        run_id = str(uuid4())
        run_path = build_run_path(created_at, run_id)
        run_dir = self.root / run_path

        meta = RunMeta(
            id=run_id,
            created_at=created_at,
            provider=provider,
            model=model,
            benchmark=benchmark,
            latency_ms=latency_ms,
            token_usage=token_usage,
            params=params,
            path=run_path,
        )
        prompt_record = PromptRecord(
            prompt=prompt,
            system_prompt=system_prompt,
            params=params,
            benchmark=benchmark,
        )

        try:
            # Under the lock so a concurrent delete cannot drop the day
            # directory between its creation and the run directory's.
            with self._index_lock():
                run_dir.mkdir(parents=True, exist_ok=False)
            _atomic_write(
                run_dir / PROMPT_FILE,
                _dump_json(prompt_record.model_dump(mode="json", by_alias=True)),
            )
            _atomic_write(run_dir / RESPONSE_FILE, _dump_json(response))
            _atomic_write(
                run_dir / META_FILE,
                _dump_json(meta.model_dump(mode="json", by_alias=True)),
            )
            _atomic_write(run_dir / ARTIFACT_FILE, html)
        except OSError as exc:
            shutil.rmtree(run_dir, ignore_errors=True)
            raise StorageError(f"Failed to write run {run_id}: {exc}") from exc

        entry = RunEntry(**dict(meta))
        with self._index_lock():
            try:
                index = self._load_index()
                index.insert(0, entry)
                self._write_index(index)
            except OSError as exc:
                shutil.rmtree(run_dir, ignore_errors=True)
                raise StorageError(f"Failed to commit run {run_id} to index: {exc}") from exc

        logger.info("Stored run %s (%s/%s) at %s", run_id, provider, model, run_path)
        return entry

    # -- Read --

    def list_runs(self) -> list[RunEntry]:
        """Return all committed runs, newest first. Empty if no index yet."""
        return self._load_index()

    def get_entry(self, run_id: str) -> RunEntry | None:
        """Return the index entry for a run, or None if unknown."""
        for entry in self._load_index():
            if entry.id == run_id:
                return entry
        return None

    def require_entry(self, run_id: str) -> RunEntry:
        """Like get_entry(), but raise NotFoundError for an unknown run."""
        entry = self.get_entry(run_id)
        if entry is None:
            raise NotFoundError(run_id)
        return entry

    def get_artifact(self, run_id: str) -> str | None:
        """Return a run's extracted HTML, or None if the run or file is missing."""
        entry = self.get_entry(run_id)
        if entry is None:
            return None
        try:
            return (self.run_dir(entry) / ARTIFACT_FILE).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def load_prompt(self, run_id: str) -> PromptRecord | None:
        """Return a run's prompt record, or None if the run or file is missing."""
        entry = self.get_entry(run_id)
        if entry is None:
            return None
        try:
            content = (self.run_dir(entry) / PROMPT_FILE).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return PromptRecord.model_validate_json(content)

    def load_score(self, run_id: str) -> ScoreRecord | None:
        """Return a run's full score, or None if unscored or unknown."""
        entry = self.get_entry(run_id)
        if entry is None:
            return None
        try:
            content = (self.run_dir(entry) / SCORE_FILE).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return ScoreRecord.model_validate_json(content)

    # -- Mutate --

    def attach_score(
        self, run_id: str, score: ScoreRecord | Mapping[str, Any]
    ) -> ScoreSummary | None:
        """Write a run's score, replacing any previous one.

        Args:
            run_id: The run to score.
            score: A ScoreRecord or a mapping validated into one.

        Returns:
            The summary now stored on the index entry, or None if the run
            is unknown.

        Raises:
            StorageError: If the score or index cannot be written.
        """
        record = score if isinstance(score, ScoreRecord) else ScoreRecord.model_validate(score)

        with self._index_lock():
            index = self._load_index()
            position = next((i for i, e in enumerate(index) if e.id == run_id), None)
            if position is None:
                return None

            entry = index[position]
            record = record.model_copy(update={"updated_at": datetime.now(timezone.utc)})
            summary = record.summary()
            try:
                _atomic_write(
                    self.run_dir(entry) / SCORE_FILE,
                    _dump_json(record.model_dump(mode="json", by_alias=True)),
                )
                index[position] = entry.model_copy(update={"score_summary": summary})
                self._write_index(index)
            except OSError as exc:
                raise StorageError(f"Failed to save score for run {run_id}: {exc}") from exc

        logger.info("Scored run %s (overall=%s)", run_id, summary.overall)
        return summary

    def delete_run(self, run_id: str) -> RunEntry | None:
        """Remove a run from the index and delete its directory.

        The index entry goes first, so a crash mid-delete leaves an orphan
        directory rather than an entry pointing at missing files.

        Returns:
            The removed entry, or None if the run is unknown (nothing changes).

        Raises:
            StorageError: If the index or the directory cannot be removed.
        """
        with self._index_lock():
            index = self._load_index()
            entry = next((e for e in index if e.id == run_id), None)
            if entry is None:
                return None

            try:
                self._write_index([e for e in index if e.id != run_id])
                run_dir = self.run_dir(entry)
                if run_dir.exists():
                    shutil.rmtree(run_dir)
                self._remove_empty_parents(run_dir)
            except OSError as exc:
                raise StorageError(f"Failed to delete run {run_id}: {exc}") from exc

        logger.info("Deleted run %s", run_id)
        return entry

    # -- Reconciliation --

    def find_orphans(self) -> list[Path]:
        """Return run directories that have no index entry."""
        if not self.runs_dir.exists():
            return []
        committed = {entry.path for entry in self._load_index()}
        orphans: list[Path] = []
        for run_dir in sorted(self.runs_dir.glob("*/*/*/*")):
            if not run_dir.is_dir():
                continue
            relative = run_dir.relative_to(self.root).as_posix()
            if relative not in committed:
                orphans.append(run_dir)
        return orphans

    def prune_orphans(self, grace_seconds: float = ORPHAN_GRACE_SECONDS) -> list[Path]:
        """Delete orphan run directories older than grace_seconds.

        Returns:
            The directories that were removed.
        """
        removed: list[Path] = []
        cutoff = time.time() - grace_seconds
        with self._index_lock():
            for run_dir in self.find_orphans():
                if run_dir.stat().st_mtime > cutoff:
                    continue
                try:
                    shutil.rmtree(run_dir)
                except OSError as exc:
                    raise StorageError(f"Failed to remove orphan {run_dir}: {exc}") from exc
                self._remove_empty_parents(run_dir)
                removed.append(run_dir)
                logger.warning("Removed orphan run directory %s", run_dir)
        return removed

    # -- Index helpers --

    @contextmanager
    def _index_lock(self) -> Iterator[None]:
        """Hold the index file lock, creating the data directory if needed."""
        self.root.mkdir(parents=True, exist_ok=True)
        with self._lock:
            yield

    def _load_index(self) -> list[RunEntry]:
        try:
            content = self.index_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        try:
            raw = json.loads(content)
            return [RunEntry.model_validate(item) for item in raw]
        except (json.JSONDecodeError, TypeError, ValidationError) as exc:
            raise StorageError(f"Corrupt run index at {self.index_path}: {exc}") from exc

    def _write_index(self, entries: list[RunEntry]) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        content = _dump_json(
            [entry.model_dump(mode="json", by_alias=True) for entry in entries]
        )
        _atomic_write(self.index_path, content)

    def _remove_empty_parents(self, run_dir: Path) -> None:
        """Drop empty day/month/year directories left above a removed run."""
        parent = run_dir.parent
        while parent != self.runs_dir and self.runs_dir in parent.parents:
            try:
                parent.rmdir()
            except OSError:
                break
            parent = parent.parent
