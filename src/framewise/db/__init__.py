"""Workflow corpus database layer."""

from framewise.db.connection import Database
from framewise.db.migrations import MIGRATIONS, run_migrations
from framewise.db.models import WorkflowRecord
from framewise.db.repository import InsertReport, WorkflowRepository
from framewise.db.schema import initialize
from framewise.db.vectors import EMBEDDING_DIMENSIONS, check_vector, serialize

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "WorkflowRecord",
    "WorkflowRepository",
    "InsertReport",
    "EMBEDDING_DIMENSIONS",
    "check_vector",
    "serialize",
]
