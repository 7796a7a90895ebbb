"""framewise search / classify — query the corpus from the command line.

search   : problem text → top workflows (match profile ``search`` by default)
classify : problem text → taxonomy classification as JSON
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from framewise.cli.common import (
    build_completer,
    build_embedder,
    console,
    get_config,
    open_db,
    resolve_db,
)
from framewise.cli.errors import err_classification, err_no_db
from framewise.db.repository import WorkflowRepository
from framewise.rag.classifier import ClassificationError, Classifier
from framewise.rag.matcher import WorkflowMatcher
from framewise.taxonomy import DOMAINS, normalize_domain


def search_cmd(
    problem: Annotated[str, typer.Argument(help="Business problem to match.")],
    domain: Annotated[
        list[str] | None,
        typer.Option("--domain", "-d", help="Restrict to a domain (repeatable)."),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, help="Maximum matches (default: search profile)."),
    ] = None,
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", "-t", min=0.0, max=1.0, help="Similarity threshold (default: search profile)."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Corpus database (default: config corpus.db)."),
    ] = None,
) -> None:
    """Find the workflows that best match a problem statement."""
    domains = _parse_domains(domain or [])
    cfg = get_config()
    db_path = resolve_db(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    embedder = build_embedder(cfg)
    profile = cfg.matching.profile("search")
    conn = open_db(db_path)
    try:
        matcher = WorkflowMatcher(
            embedder,
            WorkflowRepository(conn, dimensions=cfg.embedding.dimensions),
            threshold=profile.threshold,
            timeout=cfg.embedding.request_timeout,
        )
        matches = matcher.match(
            problem,
            domains or None,
            limit or profile.limit,
            threshold=threshold,
        )
    finally:
        conn.close()

    if not matches:
        console.print("[yellow]No workflows matched.[/]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Workflow")
    table.add_column("Domain")
    table.add_column("Similarity", justify="right")
    table.add_column("Summary", overflow="fold")
    for rank, match in enumerate(matches, start=1):
        summary = match.task_summary if len(match.task_summary) <= 120 else match.task_summary[:117] + "..."
        table.add_row(str(rank), match.name, match.domain, f"{match.similarity:.3f}", summary)
    console.print(table)


def classify_cmd(
    problem: Annotated[str, typer.Argument(help="Business problem to classify.")],
) -> None:
    """Classify a problem statement (symptoms, challenges, domains, intent)."""
    cfg = get_config()
    classifier = Classifier(build_completer(cfg))
    try:
        result = classifier.classify(problem, timeout=cfg.classifier.timeout)
    except ClassificationError as exc:
        console.print(err_classification(str(exc)))
        raise typer.Exit(1) from exc
    typer.echo(json.dumps(result.to_dict(), indent=2))


def _parse_domains(values: list[str]) -> list[str]:
    domains: list[str] = []
    for value in values:
        domain = normalize_domain(value)
        if domain is None:
            raise typer.BadParameter(
                f"unknown domain '{value}' (expected one of: {', '.join(DOMAINS)})",
                param_hint="--domain",
            )
        domains.append(domain)
    return domains
