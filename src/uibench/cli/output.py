"""Rich terminal output for run listings, scores, and the leaderboard."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any

from rich import box
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from uibench.models.run import RunEntry, ScoreSummary


def output_json(data: Any) -> None:
    """Write pretty JSON to stdout, bypassing Rich markup."""
    sys.stdout.write(json.dumps(data, indent=2, ensure_ascii=False, default=str))
    sys.stdout.write("\n")


def _format_usage(entry: RunEntry) -> str:
    if entry.token_usage is None:
        return "-"
    usage = entry.token_usage
    return f"{usage.input_tokens} in / {usage.output_tokens} out"


def _format_score(summary: ScoreSummary | None) -> str:
    if summary is None or summary.overall is None:
        return "[dim]unscored[/dim]"
    return str(summary.overall)


def render_runs_table(entries: list[RunEntry], console: Console) -> None:
    """Render the run index as a table, newest first."""
    if not entries:
        console.print("[dim]No runs stored yet.[/dim]")
        return

    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("Run ID", style="cyan", no_wrap=True)
    table.add_column("Created")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Benchmark")
    table.add_column("Latency", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Score", justify="right")

    for entry in entries:
        table.add_row(
            entry.id,
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            entry.provider,
            entry.model,
            (entry.benchmark.title or entry.benchmark.id or "-") if entry.benchmark else "-",
            f"{entry.latency_ms / 1000:.1f}s",
            _format_usage(entry),
            _format_score(entry.score_summary),
        )
    console.print(table)


def render_score_summary(summary: ScoreSummary, console: Console) -> None:
    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for field, value in summary.model_dump().items():
        table.add_row(field, "-" if value is None else str(value))
    console.print(table)


def render_leaderboard(rows: list[dict[str, Any]], console: Console) -> None:
    """Render average overall score per provider/model."""
    if not rows:
        console.print("[dim]Score runs to populate the leaderboard.[/dim]")
        return

    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("#", justify="right")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Average", justify="right", style="bold")
    table.add_column("Runs", justify="right")
    for rank, row in enumerate(rows, start=1):
        table.add_row(
            str(rank),
            row["provider"],
            row["model"],
            f"{row['average']:.1f}",
            str(row["count"]),
        )
    console.print(table)
