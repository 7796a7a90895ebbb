"""Framewise rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from framewise.cli.errors import err_no_api_key, err_no_db
    console.print(err_no_api_key("openai/text-embedding-3-small", "OPENAI_API_KEY"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_api_key(model: str, detail: str) -> str:
    """Credentials for *model* are missing.

    Example:
        Error: No API key for 'openai/text-embedding-3-small'.
          API key not found for provider 'openai'. Set the OPENAI_API_KEY ...
    """
    return (
        f"[red]Error:[/] No API key for '{model}'.\n"
        f"  {detail}"
    )


def err_config(detail: str) -> str:
    """framewise.yaml or the global config is invalid."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {detail}\n"
        "  Fix framewise.yaml (or ~/.framewise/config.yaml) and re-run."
    )


def err_source_dir_missing(source: str) -> str:
    """--source directory does not exist."""
    return (
        f"[red]Error:[/] Source directory not found: '{source}'\n"
        "  Pass an existing directory:  framewise parse --source ./workflows"
    )


def err_no_documents(source: str) -> str:
    """Source directory holds no supported documents."""
    return (
        f"[red]Error:[/] No workflow documents found in '{source}'.\n"
        "  Supported: .docx, .md, .markdown, .txt\n"
        "  Organise them in domain folders, e.g.  workflows/marketing/positioning.docx"
    )


def err_no_records_parsed(files: int) -> str:
    """Documents were found but none produced a workflow."""
    return (
        f"[red]Error:[/] {files} document(s) read but no workflows parsed.\n"
        "  Each workflow needs a '# TASK' line followed by a summary of at least\n"
        "  50 characters. Run with --verbose to see discarded units."
    )


def err_checkpoint(detail: str) -> str:
    """Checkpoint missing or malformed."""
    return (
        f"[red]Error:[/] {detail}\n"
        "  Re-create it with the previous stage:  framewise parse  /  framewise embed"
    )


def err_output_write(path: str, detail: str) -> str:
    """Output file could not be written."""
    return (
        f"[red]Error:[/] Cannot write '{path}': {detail}\n"
        "  Check that the directory is writable and has free space."
    )


def err_no_db(db_path: str = ".framewise.db") -> str:
    """No corpus database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  framewise pipeline --source ./workflows --output ./processed"
    )


def err_classification(detail: str) -> str:
    """The classifier failed or returned invalid output."""
    return (
        f"[red]Error:[/] Classification failed: {detail}\n"
        "  Re-run, or try a different model via FRAMEWISE_CLASSIFIER_MODEL."
    )


def warn_unknown_domains(count: int) -> str:
    """Records tagged 'unknown' need manual triage before they can be loaded."""
    return (
        f"[yellow]⚠[/] {count} workflow(s) have domain 'unknown' and will not be loaded.\n"
        "  Move their documents into a domain folder (strategy, marketing, sales,\n"
        "  operations, innovation, hr, finance) or edit 'domain' in the checkpoint."
    )


def warn_missing_embeddings(count: int) -> str:
    """Records without an embedding are excluded from the corpus."""
    return (
        f"[yellow]⚠[/] {count} workflow(s) have no valid embedding and will not be loaded.\n"
        "  Re-run:  framewise embed"
    )
