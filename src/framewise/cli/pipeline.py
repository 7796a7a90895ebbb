"""framewise pipeline — parse → embed → load in one run.

Intermediate checkpoints are kept in the output directory:
  <output>/parsed.json    records without embeddings
  <output>/embedded.json  records with embeddings (input of load)

Credentials are checked before the first document is read.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel

from framewise.cli.common import build_embedder, console, get_config, resolve_db
from framewise.cli.embed import run_embed
from framewise.cli.load import run_load
from framewise.cli.parse import run_parse

PARSED_FILE = "parsed.json"
EMBEDDED_FILE = "embedded.json"


def pipeline_cmd(
    source: Annotated[
        Path,
        typer.Option("--source", "-s", help="Directory of workflow documents."),
    ] = Path("workflows"),
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Directory for parsed.json and embedded.json."),
    ] = Path("processed"),
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Corpus database (default: config corpus.db)."),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", min=1, help="Records per embedding request (default: config)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Parse and embed, but only show what would be loaded."),
    ] = False,
    skip_existing: Annotated[
        bool,
        typer.Option("--skip-existing", help="Skip workflows already in the corpus (name + domain)."),
    ] = False,
    clear_first: Annotated[
        bool,
        typer.Option("--clear-first", help="Delete every workflow before loading."),
    ] = False,
    strict_dedup: Annotated[
        bool,
        typer.Option("--strict-dedup", help="Also compare content when skipping existing workflows."),
    ] = False,
) -> None:
    """Run the full ingestion pipeline: parse, embed, load."""
    started = time.monotonic()
    cfg = get_config()
    embedder = build_embedder(cfg)
    db_path = resolve_db(db, cfg)

    parsed_path = output / PARSED_FILE
    embedded_path = output / EMBEDDED_FILE

    console.print(
        Panel(
            f"Source:   {source}\n"
            f"Output:   {output}\n"
            f"Database: {db_path}\n"
            f"Model:    {cfg.embedding.model}\n"
            f"Options:  dry-run={dry_run} skip-existing={skip_existing} "
            f"clear-first={clear_first} strict-dedup={strict_dedup}",
            title="[bold]Framewise pipeline[/]",
            expand=False,
        )
    )

    records = run_parse(source, parsed_path)
    records = run_embed(records, embedded_path, embedder, cfg, batch_size)
    report = run_load(
        records,
        db_path,
        cfg,
        dry_run=dry_run,
        skip_existing=skip_existing,
        clear_first=clear_first,
        strict_dedup=strict_dedup,
    )

    elapsed = time.monotonic() - started
    loaded = "would load" if report.dry_run else "loaded"
    count = len(report.plan.to_insert) if report.dry_run else report.inserted
    console.print(
        f"\n[bold green]Pipeline complete[/] in {elapsed:.1f}s — "
        f"{len(records)} processed, {count} {loaded}.\n"
        f"  Checkpoints: {parsed_path}, {embedded_path}"
    )
