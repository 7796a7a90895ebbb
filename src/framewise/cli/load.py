"""framewise load — embedded.json → workflow corpus."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from framewise.cli.common import console, domain_table, get_config, open_db, resolve_db
from framewise.cli.errors import err_checkpoint, warn_missing_embeddings, warn_unknown_domains
from framewise.config import FramewiseConfig
from framewise.db.models import WorkflowRecord
from framewise.db.repository import WorkflowRepository
from framewise.ingest.checkpoint import CheckpointError, read_checkpoint
from framewise.ingest.loader import LoadReport, WorkflowLoader


def load_cmd(
    input: Annotated[
        Path,
        typer.Option("--input", "-i", help="Embedded checkpoint to read."),
    ] = Path("processed/embedded.json"),
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Corpus database (default: config corpus.db)."),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", min=1, help="Records per insert transaction (default: config)."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be loaded without writing."),
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
    """Load embedded workflows into the corpus."""
    cfg = get_config()
    try:
        records = read_checkpoint(input)
    except CheckpointError as exc:
        console.print(err_checkpoint(str(exc)))
        raise typer.Exit(1) from exc
    run_load(
        records,
        resolve_db(db, cfg),
        cfg,
        batch_size=batch_size,
        dry_run=dry_run,
        skip_existing=skip_existing,
        clear_first=clear_first,
        strict_dedup=strict_dedup,
    )


def run_load(
    records: list[WorkflowRecord],
    db_path: Path,
    cfg: FramewiseConfig,
    *,
    batch_size: int | None = None,
    dry_run: bool = False,
    skip_existing: bool = False,
    clear_first: bool = False,
    strict_dedup: bool = False,
) -> LoadReport:
    # A dry run against a missing corpus plans against an empty in-memory one.
    conn = open_db(db_path if db_path.exists() or not dry_run else Path(":memory:"))
    try:
        repo = WorkflowRepository(conn, dimensions=cfg.embedding.dimensions)
        loader = WorkflowLoader(repo, batch_size=batch_size or cfg.corpus.load_batch_size)

        console.print(f"\n[bold]→ Loading[/] {len(records)} workflows into {db_path}")
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            transient=True,
            console=console,
        ) as prog:
            task = prog.add_task("Inserting…", total=None)

            def _on_batch(number: int, total: int) -> None:
                prog.update(task, total=total, completed=number)

            report = loader.load(
                records,
                clear_first=clear_first,
                skip_existing=skip_existing,
                dry_run=dry_run,
                strict_dedup=strict_dedup,
                on_batch=_on_batch,
            )
        total_after = repo.count()
    finally:
        conn.close()

    _print_report(report, total_after)
    return report


def _print_report(report: LoadReport, total: int) -> None:
    plan = report.plan
    if plan.needs_triage:
        console.print(warn_unknown_domains(len(plan.needs_triage)))
    if plan.missing_embedding:
        console.print(warn_missing_embeddings(len(plan.missing_embedding)))
    if plan.skipped_existing:
        console.print(f"  [dim]↷ {len(plan.skipped_existing)} already in corpus — skipped[/]")

    if report.dry_run:
        console.print(f"  [dim]Dry run — {len(plan.to_insert)} workflows would be loaded, nothing written[/]")
        if plan.to_insert:
            console.print(domain_table(plan.domain_counts(), title="Would load"))
        return

    if report.cleared:
        console.print(f"  [yellow]↻[/] Cleared {report.cleared} existing workflows")
    console.print(f"  [green]✓[/] {report.inserted} inserted  |  {report.failed} failed  |  corpus total {total}")
    for message in report.errors:
        console.print(f"  [red]✗[/] {message}")
