"""uibench score -- attach a human score to a stored run.

The score comes from a JSON file (as saved by the dashboard checklist),
from individual --set key=value answers, or both; command-line values
win over the file.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from uibench.cli.context import load_context
from uibench.cli.output import output_json, render_score_summary
from uibench.errors import StorageError

console = Console(stderr=True)


def _parse_value(raw: str) -> Any:
    lowered = raw.strip().lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def parse_assignments(assignments: list[str]) -> dict[str, Any]:
    """Turn ["key=value", ...] into a dict with typed values.

    Raises:
        typer.BadParameter: If an item has no "=".
    """
    result: dict[str, Any] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected key=value, got '{item}'")
        result[key.strip()] = _parse_value(value)
    return result


def score(
    run_id: str = typer.Argument(..., help="Run ID"),
    score_file: Optional[Path] = typer.Option(None, "--file", "-f", help="JSON file with the score record"),
    overall: Optional[float] = typer.Option(None, "--overall", help="Overall score"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Reviewer notes"),
    assignments: Optional[list[str]] = typer.Option(None, "--set", "-s", help="Checklist answer or field, key=value"),
    data_dir: Optional[str] = typer.Option(None, "--data-dir", help="Override the data directory"),
    format_json: bool = typer.Option(False, "--json", help="Output the summary as JSON"),
) -> None:
    """Attach (or replace) the score of a run."""
    payload: dict[str, Any] = {}
    if score_file is not None:
        payload.update(json.loads(score_file.read_text(encoding="utf-8")))
    payload.update(parse_assignments(assignments or []))
    if overall is not None:
        payload["overall"] = int(overall) if overall.is_integer() else overall
    if notes is not None:
        payload["notes"] = notes

    if not payload:
        console.print("[bold red]Error:[/bold red] nothing to score; use --file, --overall, or --set")
        raise typer.Exit(code=1)

    ctx = load_context(data_dir)
    try:
        summary = ctx.store.attach_score(run_id, payload)
    except ValidationError as exc:
        console.print(f"[bold red]Invalid score:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except StorageError as exc:
        console.print(f"[bold red]Storage error:[/bold red] {exc}")
        raise typer.Exit(code=3)

    if summary is None:
        console.print(f"[bold red]Run not found:[/bold red] {run_id}")
        raise typer.Exit(code=1)

    if format_json:
        output_json(summary.model_dump(mode="json"))
    else:
        render_score_summary(summary, Console())
