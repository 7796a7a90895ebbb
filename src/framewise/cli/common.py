"""Helpers shared by framewise commands: console, config, corpus, providers."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from framewise.cli.errors import err_config, err_no_api_key
from framewise.config import ConfigError, FramewiseConfig, load_config
from framewise.db.connection import Database
from framewise.db.schema import initialize
from framewise.rag.llm_client import LiteLLMCompleter, LiteLLMEmbedder, validate_api_key

console = Console()


def get_config() -> FramewiseConfig:
    """Load merged config or exit 1 with an actionable message."""
    try:
        return load_config()
    except (ConfigError, OSError) as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc


def resolve_db(db: Path | None, cfg: FramewiseConfig) -> Path:
    return db if db is not None else Path(cfg.corpus.db)


def open_db(db_path: Path) -> sqlite3.Connection:
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


def require_api_key(model: str) -> None:
    try:
        validate_api_key(model)
    except EnvironmentError as exc:
        console.print(err_no_api_key(model, str(exc)))
        raise typer.Exit(1) from exc


def build_embedder(cfg: FramewiseConfig) -> LiteLLMEmbedder:
    """Validate credentials, then build the embedding provider from config."""
    require_api_key(cfg.embedding.model)
    return LiteLLMEmbedder(model=cfg.embedding.model, dimensions=cfg.embedding.dimensions)


def build_completer(cfg: FramewiseConfig) -> LiteLLMCompleter:
    require_api_key(cfg.classifier.model)
    return LiteLLMCompleter(model=cfg.classifier.model, max_tokens=cfg.classifier.max_tokens)


def domain_table(counts: dict[str, int], title: str = "By domain") -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Domain")
    table.add_column("Workflows", justify="right")
    for domain, n in sorted(counts.items()):
        table.add_row(domain, str(n))
    return table
