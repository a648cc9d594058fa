"""Database schema initialization."""

from __future__ import annotations

import sqlite3


def initialize(conn: sqlite3.Connection) -> None:
    """Initialize the database schema via the migration runner (idempotent)."""
    from multifolder.db.migrations import run_migrations

    run_migrations(conn)
