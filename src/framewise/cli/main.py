"""Framewise CLI entry point."""

from __future__ import annotations

import importlib.metadata
import sys
from typing import Annotated

import typer
from loguru import logger

from framewise.cli.embed import embed_cmd
from framewise.cli.load import load_cmd
from framewise.cli.parse import parse_cmd
from framewise.cli.pipeline import pipeline_cmd
from framewise.cli.search import classify_cmd, search_cmd
from framewise.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("framewise")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"framewise {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="framewise",
    help=(
        "Framewise — consulting workflow corpus CLI.\n\n"
        "  framewise pipeline  Ingest workflow documents: parse → embed → load.\n"
        "  framewise search    Find the workflows that match a business problem."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """Framewise — consulting workflow corpus CLI."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


app.command("parse")(parse_cmd)
app.command("embed")(embed_cmd)
app.command("load")(load_cmd)
app.command("pipeline")(pipeline_cmd)
app.command("status")(status_cmd)
app.command("search")(search_cmd)
app.command("classify")(classify_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed Framewise version."""
    typer.echo(f"framewise {_installed_version()}")


if __name__ == "__main__":
    app()
