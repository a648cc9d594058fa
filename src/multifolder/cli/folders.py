"""multifolder folders — manage the local folder mirror.

Commands:
  multifolder folders list                 — show mirrored folders with file counts
  multifolder folders import folders.yaml  — replace the mirror from a YAML file
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from multifolder.cli.common import load_settings, open_store, resolve_db
from multifolder.cli.errors import err_folder_file, err_storage, warn_orphans
from multifolder.folders import FolderFileError, load_folder_file

console = Console()

folders_app = typer.Typer(
    name="folders",
    help="Manage the folder mirror (list, import).",
    add_completion=False,
)


@folders_app.command("list")
def folders_list_cmd(
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the membership database."),
    ] = None,
) -> None:
    """List mirrored folders and how many attachments each holds."""
    cfg = load_settings()
    conn, store = open_store(resolve_db(db, cfg), cfg)
    try:
        folders = store.folders.list_all()
        counts = store.count_by_folder()
    finally:
        conn.close()

    if not folders:
        console.print(
            "[yellow]No folders in the mirror.[/]\n"
            "  Run:  multifolder folders import <folders.yaml>"
        )
        raise typer.Exit(0)

    table = Table(title="Folders", show_header=True, header_style="bold")
    table.add_column("Id", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Parent", justify="right")
    table.add_column("Files", justify="right")
    for folder in folders:
        parent = str(folder.parent) if folder.parent else ""
        table.add_row(
            str(folder.id), escape(folder.name), parent, f"{counts.get(folder.id, 0):,}"
        )
    console.print(table)
    console.print(f"\n  {len(folders)} folder(s)")


@folders_app.command("import")
def folders_import_cmd(
    path: Annotated[
        Path,
        typer.Argument(help="YAML file listing folders (id, name, optional parent and ord)."),
    ],
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the membership database."),
    ] = None,
) -> None:
    """Replace the folder mirror with the folders listed in a YAML file."""
    try:
        folders = load_folder_file(path)
    except FolderFileError as exc:
        console.print(err_folder_file(str(exc)))
        raise typer.Exit(1) from exc

    cfg = load_settings()
    conn, store = open_store(resolve_db(db, cfg), cfg)
    try:
        try:
            stored = store.folders.replace_all(folders)
        except sqlite3.Error as exc:
            console.print(err_storage(str(exc)))
            raise typer.Exit(1) from exc
        orphans = store.find_orphans()
    finally:
        conn.close()

    console.print(f"[green]✓[/] Imported {stored} folder(s) from {escape(str(path))}.")
    if orphans:
        console.print(warn_orphans(len(orphans)))
