"""framewise parse — source documents → parsed.json.

Walks the source tree (domain folders), parses every workflow unit and
writes the records, without embeddings, as a JSON checkpoint.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from framewise.cli.common import console, domain_table
from framewise.cli.errors import (
    err_no_documents,
    err_no_records_parsed,
    err_output_write,
    err_source_dir_missing,
    warn_unknown_domains,
)
from framewise.db.models import WorkflowRecord
from framewise.ingest.checkpoint import write_checkpoint
from framewise.ingest.parser import ParseReport, parse_directory


def parse_cmd(
    source: Annotated[
        Path,
        typer.Option("--source", "-s", help="Directory of workflow documents."),
    ] = Path("workflows"),
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Checkpoint file to write."),
    ] = Path("processed/parsed.json"),
) -> None:
    """Parse workflow documents into a JSON checkpoint."""
    run_parse(source, output)


def run_parse(source: Path, output: Path) -> list[WorkflowRecord]:
    """Parse *source* and write *output*. Exits 1 on any fatal condition."""
    if not source.is_dir():
        console.print(err_source_dir_missing(str(source)))
        raise typer.Exit(1)

    console.print(f"\n[bold]→ Parsing[/] {source}")
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        transient=True,
        console=console,
    ) as prog:
        task = prog.add_task("Reading documents…", total=None)

        def _on_file(index: int, total: int, path: Path) -> None:
            prog.update(task, total=total, completed=index - 1, description=path.name)

        report = parse_directory(source, on_file=_on_file)

    if report.files == 0:
        console.print(err_no_documents(str(source)))
        raise typer.Exit(1)

    _print_report(report)

    if not report.records:
        console.print(err_no_records_parsed(report.files))
        raise typer.Exit(1)

    try:
        write_checkpoint(output, report.records)
    except OSError as exc:
        console.print(err_output_write(str(output), str(exc)))
        raise typer.Exit(1) from exc

    console.print(f"  [green]✓[/] {len(report.records)} workflows → {output}")
    return report.records


def _print_report(report: ParseReport) -> None:
    console.print(f"  Documents: [bold]{report.files}[/]  |  Workflows: [bold]{len(report.records)}[/]")
    if report.records:
        console.print(domain_table(report.domain_counts()))
    for path, message in report.errors:
        console.print(f"  [red]✗[/] {path}: {message}")
    if report.unknown:
        console.print(warn_unknown_domains(len(report.unknown)))
