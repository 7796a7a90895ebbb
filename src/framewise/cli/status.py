"""framewise status — corpus overview and readiness.

Shows the total workflow count, the per-domain distribution (with distinct
sub-domains), how many rows lack an embedding (invisible to search), the
stored embedding width and whether the corpus is ready.

``--test-query TEXT`` also runs a search with the ``diagnostic`` match
profile, a deliberately loose threshold for inspecting the corpus.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from framewise.cli.common import build_embedder, console, get_config, open_db, resolve_db
from framewise.cli.errors import err_no_db
from framewise.config import FramewiseConfig
from framewise.db.repository import WorkflowRepository
from framewise.rag.matcher import WorkflowMatch, WorkflowMatcher


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Corpus database (default: config corpus.db)."),
    ] = None,
    test_query: Annotated[
        str | None,
        typer.Option("--test-query", help="Also run a diagnostic search for this text."),
    ] = None,
) -> None:
    """Show corpus size, domain distribution and readiness."""
    cfg = get_config()
    db_path = resolve_db(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    # Credentials are checked before the corpus is opened.
    embedder = build_embedder(cfg) if test_query is not None else None

    conn = open_db(db_path)
    try:
        repo = WorkflowRepository(conn, dimensions=cfg.embedding.dimensions)
        total = repo.count()
        by_domain = repo.count_by_domain()
        sub_domains = repo.count_sub_domains()
        missing = repo.count_missing_embeddings()
        stored_dims = repo.stored_dimensions()
        matches = None
        if embedder is not None:
            matcher = WorkflowMatcher(embedder, repo, timeout=cfg.embedding.request_timeout)
            matches = matcher.match_profile(test_query, cfg.matching.profile("diagnostic"))
    finally:
        conn.close()

    ready, message = readiness(total, missing)
    size_mb = db_path.stat().st_size / (1024 * 1024)
    lines = [
        f"Database:   {db_path} ({size_mb:.1f} MB)",
        f"Workflows:  [bold]{total}[/]",
        f"Embedded:   [bold]{total - missing}[/]  |  Missing embeddings: [bold]{missing}[/]",
        f"Dimensions: {stored_dims if stored_dims is not None else '-'} (expected {cfg.embedding.dimensions})",
        "",
        f"{'[green]✓ Ready[/]' if ready else '[yellow]✗ Not ready[/]'}  {message}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Workflow Corpus[/]", expand=False))
    if by_domain:
        console.print(_domain_table(by_domain, sub_domains))
    if matches is not None:
        _print_test_query(test_query, matches, cfg)


def readiness(total: int, missing: int) -> tuple[bool, str]:
    """Return (ready, message) for a corpus with *total* rows, *missing* unembedded."""
    if total == 0:
        return False, "No workflows found. Run framewise pipeline to populate the corpus."
    if missing == total:
        return False, "Workflows found but no embeddings. Re-run framewise embed, then load."
    return True, f"{total - missing} workflows ready with embeddings."


def _domain_table(counts: dict[str, int], sub_domains: dict[str, int]) -> Table:
    table = Table(title="By domain", show_header=True, header_style="bold")
    table.add_column("Domain")
    table.add_column("Workflows", justify="right")
    table.add_column("Sub-domains", justify="right")
    for domain, n in sorted(counts.items()):
        table.add_row(domain, str(n), str(sub_domains.get(domain, 0)))
    return table


def _print_test_query(query: str, matches: list[WorkflowMatch], cfg: FramewiseConfig) -> None:
    profile = cfg.matching.profile("diagnostic")
    console.print(
        f"\n[bold]Test query:[/] {query!r}  "
        f"[dim](threshold {profile.threshold}, limit {profile.limit})[/]"
    )
    if not matches:
        console.print("  [yellow]⚠[/] No results. Try a different query or a lower diagnostic threshold.")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Workflow")
    table.add_column("Domain")
    table.add_column("Similarity", justify="right")
    for rank, match in enumerate(matches, start=1):
        table.add_row(str(rank), match.name, match.domain, f"{match.similarity:.1%}")
    console.print(table)
