"""multifolder rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from multifolder.cli.errors import err_no_db
    console.print(err_no_db(".multifolder.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from rich.markup import escape


def err_no_db(db_path: str = ".multifolder.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{escape(db_path)}'.\n"
        "  Run:  multifolder init"
    )


def err_invalid_input(message: str) -> str:
    """An id, folder list or mode was rejected before touching storage."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Use positive integer ids, e.g.  multifolder assign -a 12 -f 3,5 --mode add"
    )


def err_config(message: str) -> str:
    """A config file or MULTIFOLDER_* variable has an invalid value."""
    return (
        f"[red]Error:[/] Invalid configuration: {escape(message)}\n"
        "  Fix multifolder.yaml (or ~/.multifolder/config.yaml) and re-run."
    )


def err_write_failed(attachment_id: int, message: str | None) -> str:
    """A membership write could not commit; previous folders are unchanged."""
    cause = escape(message or "unknown storage error")
    return (
        f"[red]Error:[/] Folders for attachment {attachment_id} were not updated: {cause}\n"
        "  The previous folders are unchanged. Check the database and re-run:\n"
        f"    multifolder show {attachment_id}"
    )


def err_storage(message: str) -> str:
    """A read or maintenance operation failed at the storage layer."""
    return (
        f"[red]Error:[/] Database operation failed: {escape(message)}\n"
        "  Run:  multifolder status  to check the database."
    )


def warn_partial_failure(failed: int, total: int) -> str:
    """Some attachments in a bulk assignment failed; the rest were saved."""
    return (
        f"[yellow]⚠[/] {failed} of {total} attachments were not updated.\n"
        "  Successful updates are kept. Re-run the command for the failed ids only."
    )


def warn_orphans(count: int) -> str:
    """Memberships reference folders missing from the folder table."""
    return (
        f"[yellow]⚠[/] {count} membership(s) point at folders that no longer exist.\n"
        "  Run:  multifolder prune"
    )


def err_folder_file(message: str) -> str:
    """A folder import file could not be read or parsed."""
    return (
        f"[red]Error:[/] {escape(message)}\n"
        "  Use a YAML list of entries with id and name (parent, ord optional), or id: name pairs."
    )


def err_empty_mirror(action: str) -> str:
    """An action needs the folder mirror, but no folders were imported."""
    return (
        f"[red]Error:[/] Cannot {escape(action)}: the folder mirror is empty.\n"
        "  Run:  multifolder folders import <folders.yaml>"
    )


def warn_empty_mirror() -> str:
    """Memberships exist but no folder names or orphan checks are available."""
    return (
        "[yellow]⚠[/] The folder mirror is empty; names show as Unknown and orphans are not checked.\n"
        "  Run:  multifolder folders import <folders.yaml>"
    )
