"""uibench CLI entry point."""

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from uibench import __version__
from uibench.cli.models_cmd import models
from uibench.cli.report_cmd import leaderboard
from uibench.cli.run_cmd import run
from uibench.cli.runs_cmd import delete, prune, runs, show
from uibench.cli.score_cmd import score

app = typer.Typer(
    name="uibench",
    help="Benchmark LLM providers on HTML generation",
    no_args_is_help=True,
)

# Register subcommands
app.command()(run)
app.command()(runs)
app.command()(show)
app.command()(score)
app.command()(delete)
app.command()(prune)
app.command()(models)
app.command()(leaderboard)


def configure_logging(verbose: bool) -> None:
    """Send uibench logs to stderr through Rich."""
    logger = logging.getLogger("uibench")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    logger.propagate = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"uibench {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable debug logging."),
) -> None:
    """Benchmark LLM providers on HTML generation."""
    configure_logging(verbose)
