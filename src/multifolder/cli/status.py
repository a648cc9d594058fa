"""multifolder status — database overview.

Shows the database file, schema version, membership totals, per-folder
counts (with names from the folder table) and any orphaned memberships.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from multifolder.cli.common import load_settings, open_store, resolve_db
from multifolder.cli.errors import warn_empty_mirror, warn_orphans
from multifolder.db.migrations import current_version
from multifolder.store import MembershipStore

console = Console()


def status_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the membership database."),
    ] = None,
) -> None:
    """Show membership totals and per-folder counts."""
    cfg = load_settings()
    db_path = resolve_db(db, cfg)
    conn, store = open_store(db_path, cfg)
    try:
        _show_database_panel(db_path, conn, verify=cfg.membership.verify_folders)
        _show_folders_panel(store)
        mirror_empty = store.folders.is_empty()
        has_memberships = bool(store.count_by_folder())
        orphans = store.find_orphans()
    finally:
        conn.close()

    if mirror_empty and has_memberships:
        console.print(warn_empty_mirror())
    elif orphans:
        console.print(warn_orphans(len(orphans)))


# ---------------------------------------------------------------------------
# Panel renderers
# ---------------------------------------------------------------------------


def _show_database_panel(db_path: Path, conn: sqlite3.Connection, *, verify: bool) -> None:
    size_mb = db_path.stat().st_size / (1024 * 1024)
    memberships = _count(conn, "SELECT COUNT(*) FROM attachment_folder")
    attachments = _count(conn, "SELECT COUNT(DISTINCT attachment_id) FROM attachment_folder")
    mirrored = _count(conn, "SELECT COUNT(*) FROM folders")
    uncategorized = _count(
        conn,
        """
        SELECT COUNT(*) FROM attachment_state s
        WHERE NOT EXISTS (
            SELECT 1 FROM attachment_folder af WHERE af.attachment_id = s.attachment_id
        )
        """,
    )

    lines = [
        f"Database:     {escape(str(db_path))} ({size_mb:.1f} MB)",
        f"Schema:       v{current_version(conn)}",
        f"Memberships:  [bold]{memberships:,}[/]  |  "
        f"Attachments in folders: [bold]{attachments:,}[/]  |  "
        f"Uncategorized (assigned): [bold]{uncategorized:,}[/]",
        f"Folder mirror: [bold]{mirrored:,}[/] folder(s)",
        f"Verify folders on write: {'[green]on[/]' if verify else '[dim]off[/]'}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Database[/]", expand=False))


def _show_folders_panel(store: MembershipStore) -> None:
    counts = store.count_by_folder()
    if not counts:
        console.print(
            Panel("[dim]No memberships yet.[/]", title="[bold]Folders[/]", expand=False)
        )
        return

    names = store.folders.names(counts)
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
    table.add_column("Folder", justify="right")
    table.add_column("Name")
    table.add_column("Files", justify="right")
    for folder_id, n in counts.items():
        table.add_row(str(folder_id), escape(names[folder_id]), f"{n:,}")
    console.print(Panel(table, title=f"[bold]Folders[/] [dim]({len(counts)})[/]", expand=False))


# ---------------------------------------------------------------------------
# DB helpers
# ---------------------------------------------------------------------------


def _count(conn: sqlite3.Connection, sql: str) -> int:
    row = conn.execute(sql).fetchone()
    return row[0] if row else 0
