"""Local mirror of the external folder tree.

The folder system owns names, parents and ordering. The mirror is filled by
replace_all() (see ``multifolder folders import``) and read for display, for
the optional existence check on writes and for orphan detection.

Folder file format (YAML), either a list of mappings:

    - {id: 3, name: Photos}
    - {id: 5, name: Logos, parent: 3, ord: 1}

or a flat mapping of id to name:

    3: Photos
    5: Logos
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from multifolder.db.connection import transaction
from multifolder.db.models import Folder
from multifolder.ids import MAX_ID, InvalidIdError, validate_id

UNKNOWN_FOLDER_NAME = "Unknown"


class FolderFileError(ValueError):
    """Raised when a folder import file is unreadable or malformed."""


class FolderDirectory:
    """Lookups and bulk sync against the ``folders`` mirror table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, folder_id: int) -> Folder | None:
        """Return the folder with *folder_id*, or None if the mirror lacks it."""
        row = self._conn.execute(
            "SELECT id, name, parent, ord FROM folders WHERE id = ?", (folder_id,)
        ).fetchone()
        return _row_to_folder(row) if row else None

    def list_all(self) -> list[Folder]:
        """Return every mirrored folder in display order."""
        rows = self._conn.execute(
            "SELECT id, name, parent, ord FROM folders ORDER BY ord, name, id"
        ).fetchall()
        return [_row_to_folder(r) for r in rows]

    def missing(self, folder_ids: Iterable[int]) -> set[int]:
        """Return the subset of *folder_ids* absent from the mirror."""
        wanted = set(folder_ids)
        if not wanted:
            return set()
        placeholders = ",".join("?" * len(wanted))
        rows = self._conn.execute(
            f"SELECT id FROM folders WHERE id IN ({placeholders})", sorted(wanted)
        ).fetchall()
        return wanted - {r[0] for r in rows}

    def names(self, folder_ids: Iterable[int]) -> dict[int, str]:
        """Map each id to its folder name, using "Unknown" for missing ones.

        The result preserves the order of *folder_ids*.
        """
        ids = list(dict.fromkeys(folder_ids))
        if not ids:
            return {}
        placeholders = ",".join("?" * len(ids))
        rows = self._conn.execute(
            f"SELECT id, name FROM folders WHERE id IN ({placeholders})", ids
        ).fetchall()
        found = {r["id"]: r["name"] for r in rows}
        return {i: found.get(i, UNKNOWN_FOLDER_NAME) for i in ids}

    def is_empty(self) -> bool:
        return self._conn.execute("SELECT 1 FROM folders LIMIT 1").fetchone() is None

    def replace_all(self, folders: Iterable[Folder]) -> int:
        """Replace the whole mirror with *folders* in one transaction.

        Returns the number of folders stored. Memberships are not touched;
        run prune afterwards to drop those whose folder disappeared.
        Raises sqlite3.Error on storage failure (the old mirror is kept).
        """
        rows = [(f.id, f.name, f.parent, f.ord) for f in folders]
        with transaction(self._conn):
            self._conn.execute("DELETE FROM folders")
            self._conn.executemany(
                "INSERT INTO folders (id, name, parent, ord) VALUES (?, ?, ?, ?)", rows
            )
        return len(rows)


def _row_to_folder(row: sqlite3.Row) -> Folder:
    return Folder(id=row["id"], name=row["name"], parent=row["parent"], ord=row["ord"])


def load_folder_file(path: Path) -> list[Folder]:
    """Parse a YAML folder file into Folder records, sorted by id.

    Raises:
        FolderFileError: Unreadable file, bad YAML, or an invalid entry.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise FolderFileError(f"Cannot read folder file '{path}': {exc}") from exc
    except yaml.YAMLError as exc:
        raise FolderFileError(f"Folder file '{path}' is not valid YAML: {exc}") from exc

    if isinstance(raw, dict):
        entries: list[Any] = [{"id": k, "name": v} for k, v in raw.items()]
    elif isinstance(raw, list):
        entries = raw
    else:
        raise FolderFileError(
            f"Folder file '{path}' must contain a list of folders or an id: name mapping"
        )

    folders: dict[int, Folder] = {}
    for n, entry in enumerate(entries, start=1):
        folder = _entry_to_folder(entry, f"{path} entry {n}")
        if folder.id in folders:
            raise FolderFileError(f"{path} entry {n}: duplicate folder id {folder.id}")
        folders[folder.id] = folder
    return [folders[i] for i in sorted(folders)]


def _entry_to_folder(entry: Any, where: str) -> Folder:
    if not isinstance(entry, dict):
        raise FolderFileError(f"{where}: expected a mapping with 'id' and 'name'")
    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        raise FolderFileError(f"{where}: 'name' must be a non-empty string")
    try:
        folder_id = validate_id(entry.get("id"), "folder")
        parent = entry.get("parent") or 0
        if parent:
            parent = validate_id(parent, "parent folder")
    except InvalidIdError as exc:
        raise FolderFileError(f"{where}: {exc}") from None
    ord_ = entry.get("ord", 0)
    if isinstance(ord_, bool) or not isinstance(ord_, int) or abs(ord_) > MAX_ID:
        raise FolderFileError(f"{where}: 'ord' must be an integer")
    return Folder(id=folder_id, name=name.strip(), parent=parent, ord=ord_)

