"""Typer CLI entry point for tlyt-bot."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, NoReturn

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tlyt_bot import __version__
from tlyt_bot.config import Settings, format_validation_error
from tlyt_bot.dashboard import build_stats_table, collect_stats
from tlyt_bot.logging import configure_logging, generate_run_id
from tlyt_bot.models import PipelineFailure
from tlyt_bot.pipeline import Pipeline, build_pipeline
from tlyt_bot.storage import JsonRepository

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="tlyt-bot",
    help="Discover trending videos, analyze them and post digests to Reddit.",
    no_args_is_help=True,
)

_state: dict[str, Any] = {"config_path": None}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_settings(config_path: Path | None = None, **overrides: Any) -> Settings:
    """Load settings with error handling and user-friendly messages."""
    from pydantic import ValidationError

    try:
        return Settings.load(config_path=config_path, **overrides)
    except ValidationError as exc:
        err_console.print(
            Panel(
                Text(format_validation_error(exc)),
                title="Configuration Error",
                border_style="red",
            )
        )
        raise typer.Exit(code=1) from exc


def _prepare() -> Settings:
    settings = _load_settings(_state["config_path"])
    configure_logging(
        level=settings.logging.level,
        fmt=settings.logging.format,
        log_file=settings.logging.file,
        run_id=generate_run_id(),
    )
    return settings


def _build(settings: Settings) -> Pipeline:
    try:
        return build_pipeline(settings)
    except Exception as exc:
        err_console.print(Text.assemble(("Cannot start pipeline: ", "red"), str(exc)))
        raise typer.Exit(code=1) from exc


def _fail(failure: PipelineFailure) -> NoReturn:
    err_console.print(
        Panel(Text(failure.details), title=Text(failure.error), border_style="red")
    )
    raise typer.Exit(code=1)


def _print_errors(errors: list[str]) -> None:
    if not errors:
        return
    table = Table(title=f"Errors ({len(errors)})", show_header=False)
    table.add_column("Error", style="red")
    for error in errors:
        table.add_row(Text(error))
    console.print(table)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"tlyt-bot {__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.callback()
def root(
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to a YAML config file."),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
) -> None:
    """tlyt-bot command line."""
    _state["config_path"] = config


@app.command()
def discover() -> None:
    """Fetch trending videos from every configured region and save new ones."""
    settings = _prepare()
    pipeline = _build(settings)
    try:
        result = pipeline.run_discover()
    finally:
        pipeline.close()

    if isinstance(result, PipelineFailure):
        _fail(result)
    console.print(f"[green]Discovered[/green] {result.discovered} new videos")
    _print_errors(result.errors)


@app.command()
def process(
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-n", min=1, help="Videos to analyze and post."),
    ] = None,
) -> None:
    """Analyze unprocessed videos (newest first) and post them."""
    settings = _prepare()
    pipeline = _build(settings)
    try:
        result = pipeline.run_process(batch_size)
    finally:
        pipeline.close()

    if isinstance(result, PipelineFailure):
        _fail(result)
    console.print(
        f"[green]Analyzed[/green] {result.analyzed}, "
        f"[green]posted[/green] {result.posted}"
    )
    _print_errors(result.errors)


@app.command()
def stats() -> None:
    """Show dashboard counts from the repository."""
    settings = _prepare()
    repository = JsonRepository(settings.storage.path)
    console.print(build_stats_table(collect_stats(repository)))


@app.command()
def serve() -> None:
    """Run the HTTP trigger and dashboard API."""
    from tlyt_bot.api.server import run_server

    settings = _prepare()
    run_server(settings)


def main() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":
    main()
