"""multifolder prune / purge — cleanup after upstream deletes.

Memberships are never cascaded automatically when an attachment or folder is
deleted elsewhere. These commands remove the stale rows on request:

  multifolder prune                  rows whose folder is gone from the folders table
  multifolder purge --attachment 12  every row of a deleted attachment
  multifolder purge --folder 7       every row of a deleted folder
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from multifolder.cli.common import load_settings, open_store, resolve_db
from multifolder.cli.errors import err_empty_mirror, err_invalid_input, err_storage
from multifolder.ids import InvalidIdError, validate_id

console = Console()


def prune_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the membership database."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove memberships that point at folders which no longer exist."""
    cfg = load_settings()
    conn, store = open_store(resolve_db(db, cfg), cfg)
    try:
        if store.folders.is_empty():
            console.print(err_empty_mirror("detect orphaned memberships"))
            raise typer.Exit(1)

        orphans = store.find_orphans()
        if not orphans:
            console.print("[green]✓[/] No orphaned memberships.")
            return

        folders = sorted({m.folder_id for m in orphans})
        attachments = {m.attachment_id for m in orphans}
        console.print(f"\nOrphaned memberships: [bold]{len(orphans)}[/]")
        console.print(
            f"  Missing folders: {', '.join(str(f) for f in folders)}  |  "
            f"Attachments affected: {len(attachments)}"
        )

        if not yes:
            if not typer.confirm("Remove them?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        try:
            removed = store.prune_orphans()
        except sqlite3.Error as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1) from exc
        console.print(f"\n[green]✓[/] Removed {len(removed)} orphaned membership(s).")
    finally:
        conn.close()


def purge_cmd(
    attachment: Annotated[
        str | None,
        typer.Option("--attachment", "-a", help="Attachment id deleted upstream."),
    ] = None,
    folder: Annotated[
        str | None,
        typer.Option("--folder", "-f", help="Folder id deleted upstream."),
    ] = None,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the membership database."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Forget every membership of one deleted attachment or folder."""
    if (attachment is None) == (folder is None):
        console.print(err_invalid_input("Pass exactly one of --attachment or --folder."))
        raise typer.Exit(1)

    try:
        if attachment is not None:
            target, ident = "attachment", validate_id(attachment)
        else:
            target, ident = "folder", validate_id(folder, "folder")
    except InvalidIdError as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1) from exc

    cfg = load_settings()
    conn, store = open_store(resolve_db(db, cfg), cfg)
    try:
        if not yes:
            if not typer.confirm(f"Forget all memberships of {target} {ident}?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        try:
            if target == "attachment":
                removed = store.purge_attachment(ident)
                console.print(f"[green]✓[/] Attachment {ident}: {removed} membership(s) removed.")
            else:
                affected = store.purge_folder(ident)
                console.print(
                    f"[green]✓[/] Folder {ident}: removed from {len(affected)} attachment(s)."
                )
        except sqlite3.Error as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1) from exc
    finally:
        conn.close()
