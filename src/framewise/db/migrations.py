"""Forward-only migration runner for the workflow corpus schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# embedding is a float32 blob (sqlite-vec format); NULL means "not embedded yet".
_V1_SQL = """
CREATE TABLE IF NOT EXISTS workflows (
    id                      TEXT PRIMARY KEY,
    name                    TEXT NOT NULL,
    domain                  TEXT NOT NULL,
    sub_domain              TEXT NOT NULL DEFAULT 'general',
    source_book             TEXT NOT NULL DEFAULT 'Unknown Source',
    task_summary            TEXT NOT NULL,
    full_prompt             TEXT NOT NULL,
    key_questions           TEXT NOT NULL DEFAULT '[]',
    problem_patterns        TEXT NOT NULL DEFAULT '[]',
    synergy_triggers        TEXT NOT NULL DEFAULT '[]',
    complexity              TEXT NOT NULL DEFAULT 'low',
    estimated_duration_min  INTEGER,
    file_path               TEXT NOT NULL DEFAULT '',
    content_hash            TEXT NOT NULL,
    embedding               BLOB,
    created_at              DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_workflows_domain ON workflows(domain);
CREATE INDEX IF NOT EXISTS idx_workflows_name_domain ON workflows(name, domain);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
