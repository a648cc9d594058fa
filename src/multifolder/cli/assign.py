"""multifolder assign — set, add or remove folders for one or more attachments.

Each attachment is updated in its own transaction. A failure on one id does
not undo the others; the command prints a per-attachment tally instead.

Usage:
  multifolder assign -a 12 -f 3,5                 replace 12's folders with {3, 5}
  multifolder assign -a 12 -a 13 -f 7 --mode add  also put 12 and 13 in folder 7
  multifolder assign -a 12 -f 5 --mode remove     take 12 out of folder 5
  multifolder assign -a 12 --mode set             make 12 uncategorized

Exit codes: 0 all saved, 1 invalid input or nothing saved, 3 partially saved.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from multifolder.assign import BulkResult, InvalidModeError, Mode, apply_bulk
from multifolder.cli.common import load_settings, open_store, resolve_db
from multifolder.cli.errors import err_invalid_input, err_write_failed, warn_partial_failure
from multifolder.ids import InvalidIdError, parse_folder_ids

console = Console()

EXIT_PARTIAL = 3


def assign_cmd(
    attachment: Annotated[
        list[str] | None,
        typer.Option("--attachment", "-a", help="Attachment id (repeatable)."),
    ] = None,
    folders: Annotated[
        list[str] | None,
        typer.Option("--folders", "-f", help="Folder ids, comma-separated (repeatable)."),
    ] = None,
    mode: Annotated[
        str,
        typer.Option("--mode", "-m", help="set (replace), add (union) or remove (subtract)."),
    ] = Mode.SET.value,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Path to the membership database."),
    ] = None,
) -> None:
    """Assign attachments to folders."""
    attachment_ids = attachment or []
    if not attachment_ids:
        console.print(err_invalid_input("No --attachment specified."))
        raise typer.Exit(1)

    try:
        folder_ids = parse_folder_ids(",".join(folders or []))
        parsed_mode = Mode.parse(mode)
    except (InvalidIdError, InvalidModeError) as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1) from exc

    cfg = load_settings()
    conn, store = open_store(resolve_db(db, cfg), cfg)
    try:
        result = apply_bulk(store, attachment_ids, folder_ids, parsed_mode)
    except (InvalidIdError, InvalidModeError) as exc:
        console.print(err_invalid_input(str(exc)))
        raise typer.Exit(1) from exc
    finally:
        conn.close()

    _print_result(result, parsed_mode)

    if result.ok:
        return
    if result.succeeded == 0:
        raise typer.Exit(1)
    console.print(warn_partial_failure(result.failed, len(result.items)))
    raise typer.Exit(EXIT_PARTIAL)


def _print_result(result: BulkResult, mode: Mode) -> None:
    if len(result.items) == 1:
        item = result.items[0]
        if item.ok:
            listed = ", ".join(str(f) for f in item.folder_ids) or "none (uncategorized)"
            console.print(f"[green]✓[/] Attachment {item.attachment_id} ({mode.value}): folders {listed}")
        else:
            console.print(err_write_failed(item.attachment_id, item.error))
        return

    table = Table(title=f"assign --mode {mode.value}", show_header=True, header_style="bold")
    table.add_column("Attachment", justify="right")
    table.add_column("Status")
    table.add_column("Folders / error")
    for item in result.items:
        if item.ok:
            listed = ", ".join(str(f) for f in item.folder_ids) or "[dim]uncategorized[/]"
            table.add_row(str(item.attachment_id), "[green]✓ saved[/]", listed)
        else:
            table.add_row(str(item.attachment_id), "[red]✗ failed[/]", escape(item.error or ""))
    console.print(table)
    console.print(
        f"Saved: [bold]{result.succeeded}[/]  |  Failed: [bold]{result.failed}[/]"
    )
