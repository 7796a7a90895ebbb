"""framewise embed — parsed.json → embedded.json.

Credentials are validated before any record is read. Rate-limited batches
are retried after ``embedding.rate_limit_wait`` seconds.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from framewise.cli.common import build_embedder, console, get_config
from framewise.cli.errors import err_checkpoint, err_output_write
from framewise.config import FramewiseConfig
from framewise.db.models import WorkflowRecord
from framewise.ingest.checkpoint import CheckpointError, read_checkpoint, write_checkpoint
from framewise.ingest.embedder import EmbeddingError, EmbeddingStage
from framewise.rag.llm_client import EmbeddingProvider


def embed_cmd(
    input: Annotated[
        Path,
        typer.Option("--input", "-i", help="Parsed checkpoint to read."),
    ] = Path("processed/parsed.json"),
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Embedded checkpoint to write."),
    ] = Path("processed/embedded.json"),
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", min=1, help="Records per embedding request (default: config)."),
    ] = None,
) -> None:
    """Attach embeddings to parsed workflows."""
    cfg = get_config()
    embedder = build_embedder(cfg)
    try:
        records = read_checkpoint(input)
    except CheckpointError as exc:
        console.print(err_checkpoint(str(exc)))
        raise typer.Exit(1) from exc
    run_embed(records, output, embedder, cfg, batch_size)


def run_embed(
    records: list[WorkflowRecord],
    output: Path,
    embedder: EmbeddingProvider,
    cfg: FramewiseConfig,
    batch_size: int | None = None,
) -> list[WorkflowRecord]:
    """Embed *records* in place and write *output*. Exits 1 on fatal errors."""
    stage = EmbeddingStage(
        embedder,
        batch_size=batch_size or cfg.embedding.batch_size,
        dimensions=cfg.embedding.dimensions,
        rate_limit_wait=cfg.embedding.rate_limit_wait,
        batch_delay=cfg.embedding.batch_delay,
    )

    console.print(f"\n[bold]→ Embedding[/] {len(records)} workflows ({cfg.embedding.model})")
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task("Embedding…", total=None)

        def _on_batch(number: int, total: int) -> None:
            prog.update(task, total=total, completed=number)

        try:
            report = stage.run(records, on_batch=_on_batch)
        except EmbeddingError as exc:
            console.print(f"  [red]✗ Embedding failed:[/] {exc}")
            raise typer.Exit(1) from exc

    try:
        write_checkpoint(output, report.records)
    except OSError as exc:
        console.print(err_output_write(str(output), str(exc)))
        raise typer.Exit(1) from exc

    console.print(f"  [green]✓[/] {report.embedded} embedded → {output}")
    if report.invalid:
        console.print(
            f"  [yellow]⚠[/] {len(report.invalid)} rejected "
            f"(expected {cfg.embedding.dimensions} dimensions)"
        )
    return report.records
