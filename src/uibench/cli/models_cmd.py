"""uibench models -- list the models a provider offers."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console

from uibench.adapters.base import BaseAdapter
from uibench.adapters.registry import get_adapter, resolve_adapter_class
from uibench.cli.context import load_context
from uibench.cli.output import output_json
from uibench.errors import MissingCredentialError, UnsupportedProviderError, UpstreamError
from uibench.models.config import resolve_api_key

console = Console(stderr=True)


async def _list_models(adapter: BaseAdapter) -> list[str]:
    async with adapter:
        return await adapter.list_models()


def models(
    provider: str = typer.Argument(..., help="Provider id"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="API key (default: provider env var)"),
    format_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """List model identifiers available from a provider."""
    ctx = load_context()
    try:
        resolve_adapter_class(provider)
        key = resolve_api_key(provider, api_key, config=ctx.config)
        adapter = get_adapter(provider, key, timeout=ctx.config.request_timeout_seconds)
        model_ids = asyncio.run(_list_models(adapter))
    except (UnsupportedProviderError, MissingCredentialError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except UpstreamError as exc:
        console.print(f"[bold red]Failed to load models ({exc.status}):[/bold red] {exc.body}")
        raise typer.Exit(code=2)

    if format_json:
        output_json(model_ids)
        return
    if not model_ids:
        console.print(f"[dim]No models reported by {provider}.[/dim]")
        return
    out = Console()
    for model_id in model_ids:
        out.print(model_id, highlight=False)
