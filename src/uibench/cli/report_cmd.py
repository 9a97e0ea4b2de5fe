"""uibench leaderboard -- average overall score per provider/model."""

from __future__ import annotations

from typing import Any, Optional

import typer
from rich.console import Console

from uibench.cli.context import load_context
from uibench.cli.output import output_json, render_leaderboard
from uibench.models.run import RunEntry


def build_leaderboard(entries: list[RunEntry]) -> list[dict[str, Any]]:
    """Average score_summary.overall per provider/model, best first.

    Unscored runs and runs without an overall value are ignored.
    """
    groups: dict[tuple[str, str], list[float]] = {}
    for entry in entries:
        summary = entry.score_summary
        if summary is None or summary.overall is None:
            continue
        groups.setdefault((entry.provider, entry.model), []).append(float(summary.overall))

    rows = [
        {
            "provider": provider,
            "model": model,
            "average": sum(scores) / len(scores),
            "count": len(scores),
        }
        for (provider, model), scores in groups.items()
    ]
    rows.sort(key=lambda row: row["average"], reverse=True)
    return rows


def leaderboard(
    data_dir: Optional[str] = typer.Option(None, "--data-dir", help="Override the data directory"),
    format_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Rank provider/model pairs by average overall score."""
    ctx = load_context(data_dir)
    rows = build_leaderboard(ctx.store.list_runs())
    if format_json:
        output_json(rows)
        return
    render_leaderboard(rows, Console())
