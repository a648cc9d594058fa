"""Forward-only migration runner for the multifolder schema.

The ``folders`` table mirrors the external folder tree; the store reads it
for names and existence checks but never writes it.
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# v1 reproduces the legacy layout: no uniqueness on the relation.
_V1_SQL = """
CREATE TABLE IF NOT EXISTS folders (
    id      INTEGER PRIMARY KEY,
    name    TEXT NOT NULL,
    parent  INTEGER NOT NULL DEFAULT 0,
    ord     INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS attachment_folder (
    folder_id       INTEGER NOT NULL,
    attachment_id   INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_attachment_folder_attachment
    ON attachment_folder (attachment_id);
"""

# v2: collapse duplicate pairs written by legacy code, then enforce uniqueness.
_V2_SQL = """
DELETE FROM attachment_folder
WHERE rowid NOT IN (
    SELECT MIN(rowid) FROM attachment_folder GROUP BY attachment_id, folder_id
);

CREATE UNIQUE INDEX IF NOT EXISTS uq_attachment_folder_pair
    ON attachment_folder (attachment_id, folder_id);

CREATE INDEX IF NOT EXISTS idx_attachment_folder_folder
    ON attachment_folder (folder_id);

CREATE TABLE IF NOT EXISTS attachment_state (
    attachment_id   INTEGER PRIMARY KEY,
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (2, _V2_SQL),
]


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 for a fresh database)."""
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row[0] is not None else 0


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    current = current_version(conn)

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
