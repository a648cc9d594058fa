"""Shared CLI plumbing: config loading and opening the store."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from multifolder.cli.errors import err_config, err_no_db
from multifolder.config import ConfigError, MultifolderConfig, load_config
from multifolder.db.connection import Database
from multifolder.db.schema import initialize
from multifolder.store import MembershipStore

console = Console()


def load_settings() -> MultifolderConfig:
    """Load config from the current directory, exiting 1 on a bad value."""
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc


def resolve_db(db: Path | None, cfg: MultifolderConfig) -> Path:
    """Return the --db path, or the configured one; exit 1 if it does not exist."""
    db_path = db if db is not None else Path(cfg.database.path)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    return db_path


def open_store(db_path: Path, cfg: MultifolderConfig) -> tuple[sqlite3.Connection, MembershipStore]:
    """Open *db_path*, apply pending migrations and wrap it in a configured store."""
    conn = Database(db_path, timeout=cfg.database.busy_timeout).connect()
    initialize(conn)
    return conn, MembershipStore.from_config(conn, cfg.membership)
