"""multifolder show / folder — membership lookups.

Usage:
  multifolder show 42        folders of attachment 42
  multifolder folder 7       attachments in folder 7
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from multifolder.cli.common import load_settings, open_store, resolve_db
from multifolder.cli.errors import err_invalid_input
from multifolder.folders import UNKNOWN_FOLDER_NAME
from multifolder.ids import InvalidIdError, validate_id

console = Console()


def show_cmd(
    attachment_id: Annotated[str, typer.Argument(help="Attachment id.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the membership database."),
    ] = None,
) -> None:
    """Show the folders an attachment belongs to."""
    try:
        ident = validate_id(attachment_id)
    except InvalidIdError as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1) from exc

    cfg = load_settings()
    conn, store = open_store(resolve_db(db, cfg), cfg)
    try:
        folder_ids = store.get_attachment_folders(ident)
        assigned_at = store.assigned_at(ident)

        if not folder_ids:
            if assigned_at is None:
                console.print(f"Attachment {ident}: [dim]never assigned to a folder[/]")
            else:
                console.print(
                    f"Attachment {ident}: [yellow]Uncategorized[/] [dim](since {assigned_at[:19]})[/]"
                )
            return

        names = store.folders.names(folder_ids)
        table = Table(title=f"Attachment {ident}", show_header=True, header_style="bold")
        table.add_column("Folder", justify="right")
        table.add_column("Name")
        for folder_id, name in names.items():
            table.add_row(str(folder_id), escape(name))
        console.print(table)
        if assigned_at is not None:
            console.print(f"[dim]Last changed: {assigned_at[:19]}[/]")
    finally:
        conn.close()


def folder_cmd(
    folder_id: Annotated[str, typer.Argument(help="Folder id.")],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the membership database."),
    ] = None,
) -> None:
    """List the attachments in a folder."""
    try:
        ident = validate_id(folder_id, "folder")
    except InvalidIdError as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1) from exc

    cfg = load_settings()
    conn, store = open_store(resolve_db(db, cfg), cfg)
    try:
        folder = store.folders.get(ident)
        attachments = store.list_folder_attachments(ident)
    finally:
        conn.close()

    name = folder.name if folder else UNKNOWN_FOLDER_NAME
    console.print(f"Folder {ident} [bold]{escape(name)}[/]: {len(attachments)} attachment(s)")
    if attachments:
        console.print("  " + ", ".join(str(a) for a in attachments))
