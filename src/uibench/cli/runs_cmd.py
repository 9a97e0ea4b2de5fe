"""uibench runs / show / delete / prune -- inspect and manage stored runs."""

from __future__ import annotations

import sys
from typing import Optional

import typer
from rich.console import Console

from uibench.cli.context import load_context
from uibench.cli.output import output_json, render_runs_table
from uibench.errors import StorageError

console = Console(stderr=True)


def runs(
    data_dir: Optional[str] = typer.Option(None, "--data-dir", help="Override the data directory"),
    limit: int = typer.Option(20, "-n", "--limit", help="Show at most this many runs"),
    format_json: bool = typer.Option(False, "--json", help="Output the index as JSON"),
) -> None:
    """List stored runs, newest first."""
    ctx = load_context(data_dir)
    entries = ctx.store.list_runs()
    if format_json:
        output_json([e.model_dump(mode="json", by_alias=True) for e in entries[:limit]])
        return
    render_runs_table(entries[:limit], Console())
    if len(entries) > limit:
        console.print(f"[dim]{len(entries) - limit} more not shown (use --limit).[/dim]")


def show(
    run_id: str = typer.Argument(..., help="Run ID"),
    data_dir: Optional[str] = typer.Option(None, "--data-dir", help="Override the data directory"),
) -> None:
    """Print the HTML artifact of a run."""
    ctx = load_context(data_dir)
    html = ctx.store.get_artifact(run_id)
    if html is None:
        console.print(f"[bold red]Run not found:[/bold red] {run_id}")
        raise typer.Exit(code=1)
    sys.stdout.write(html)
    sys.stdout.write("\n")


def delete(
    run_id: str = typer.Argument(..., help="Run ID"),
    data_dir: Optional[str] = typer.Option(None, "--data-dir", help="Override the data directory"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a run and all of its files."""
    ctx = load_context(data_dir)
    if not yes and not typer.confirm(f"Delete run {run_id}?"):
        raise typer.Exit(code=1)
    try:
        entry = ctx.store.delete_run(run_id)
    except StorageError as exc:
        console.print(f"[bold red]Storage error:[/bold red] {exc}")
        raise typer.Exit(code=3)
    if entry is None:
        console.print(f"[bold red]Run not found:[/bold red] {run_id}")
        raise typer.Exit(code=1)
    console.print(f"Deleted run {entry.id} ({entry.provider}/{entry.model})")


def prune(
    data_dir: Optional[str] = typer.Option(None, "--data-dir", help="Override the data directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="List orphans without deleting"),
) -> None:
    """Remove run directories that are missing from the index."""
    ctx = load_context(data_dir)
    if dry_run:
        orphans = ctx.store.find_orphans()
        for path in orphans:
            console.print(str(path))
        console.print(f"{len(orphans)} orphan run director{'y' if len(orphans) == 1 else 'ies'}")
        return
    removed = ctx.store.prune_orphans()
    console.print(f"Removed {len(removed)} orphan run director{'y' if len(removed) == 1 else 'ies'}")
