"""uibench run -- send one prompt to one provider and store the run.

Resolves the API key, streams the completion to the terminal (or makes
a single-shot call with --no-stream), extracts the HTML artifact, and
persists the run under the configured data directory.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from uibench.cli.context import load_context
from uibench.cli.output import output_json
from uibench.errors import (
    MissingCredentialError,
    StorageError,
    UnsupportedProviderError,
    UpstreamError,
)
from uibench.execution.runner import BenchRunner, RunOutcome, build_request
from uibench.models.run import BenchmarkTag

console = Console(stderr=True)


def run(
    provider: str = typer.Argument(..., help="Provider id (openai, anthropic, zai, minimax, openrouter)"),
    model: str = typer.Argument(..., help="Model identifier"),
    prompt: Optional[str] = typer.Option(None, "--prompt", "-p", help="Prompt text"),
    prompt_file: Optional[Path] = typer.Option(None, "--prompt-file", "-f", help="Read the prompt from a file"),
    system_prompt: Optional[str] = typer.Option(None, "--system", help="System prompt"),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t", help="Sampling temperature"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens", help="Max output tokens"),
    stream: bool = typer.Option(True, "--stream/--no-stream", help="Stream output as it arrives"),
    benchmark_id: Optional[str] = typer.Option(None, "--benchmark-id", help="Benchmark identifier"),
    benchmark_title: Optional[str] = typer.Option(None, "--benchmark-title", help="Benchmark title"),
    benchmark_category: Optional[str] = typer.Option(None, "--benchmark-category", help="Benchmark category"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="API key (default: provider env var)"),
    data_dir: Optional[str] = typer.Option(None, "--data-dir", help="Override the data directory"),
    format_json: bool = typer.Option(False, "--json", help="Print the stored entry as JSON"),
) -> None:
    """Run a prompt against a provider and store the result."""
    if prompt_file is not None:
        prompt = prompt_file.read_text(encoding="utf-8")
    if not prompt:
        console.print("[bold red]Error:[/bold red] provide --prompt or --prompt-file")
        raise typer.Exit(code=1)

    ctx = load_context(data_dir)
    benchmark = None
    if benchmark_id or benchmark_title or benchmark_category:
        benchmark = BenchmarkTag(id=benchmark_id, title=benchmark_title, category=benchmark_category)

    try:
        request = build_request(
            provider,
            model,
            prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            benchmark=benchmark,
            api_key=api_key,
            config=ctx.config,
        )
    except (UnsupportedProviderError, MissingCredentialError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    runner = BenchRunner.from_config(ctx.config, ctx.store)
    live = not format_json

    def on_delta(delta: str) -> None:
        if live:
            sys.stdout.write(delta)
            sys.stdout.flush()

    try:
        if stream:
            outcome = asyncio.run(runner.run_streaming(request, on_delta))
        else:
            outcome = asyncio.run(runner.run_once(request))
    except UpstreamError as exc:
        console.print(f"\n[bold red]{exc.provider} error {exc.status}:[/bold red] {exc.body}")
        raise typer.Exit(code=2)
    except TimeoutError:
        console.print("\n[bold red]Run exceeded the maximum duration.[/bold red]")
        raise typer.Exit(code=2)
    except StorageError as exc:
        console.print(f"\n[bold red]Storage error:[/bold red] {exc}")
        raise typer.Exit(code=3)

    _report(outcome, format_json=format_json, streamed=stream)


def _report(outcome: RunOutcome, *, format_json: bool, streamed: bool) -> None:
    if format_json:
        output_json(
            {
                "entry": outcome.entry.model_dump(mode="json", by_alias=True),
                "html": outcome.html,
            }
        )
        return

    if not streamed:
        sys.stdout.write(outcome.text)
    sys.stdout.write("\n")
    entry = outcome.entry
    usage = entry.token_usage
    console.print(
        f"[bold green]Stored run[/bold green] {entry.id} "
        f"[dim]({entry.latency_ms}ms, "
        + (f"{usage.input_tokens} in / {usage.output_tokens} out" if usage else "usage n/a")
        + f", {len(outcome.html)} chars of HTML)[/dim]"
    )
