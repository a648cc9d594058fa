"""Folder-membership store: the attachment <-> folder many-to-many relation.

Every mutation runs in its own ``BEGIN IMMEDIATE`` transaction scoped to the
call, so a reader never sees a half-replaced set and concurrent writers on the
same attachment serialize at the storage layer (last commit wins). There is no
version check between read and write; callers that read-modify-write (see
multifolder.assign) accept lost updates between two concurrent editors.

Storage failures during a mutation roll back and come back as a falsy
Outcome. Invalid ids raise InvalidIdError before any SQL runs.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from multifolder.config import MembershipCfg
from multifolder.db.connection import transaction
from multifolder.db.models import ChangeKind, Membership, MembershipEvent, Outcome
from multifolder.events import EventBus, Subscriber
from multifolder.folders import FolderDirectory
from multifolder.ids import normalize_folder_ids, validate_id


class MembershipStore:
    """Data access for folder memberships on a caller-owned connection.

    One store wraps one sqlite3.Connection; the connection must not be shared
    between threads. Construct one store per worker (or per request) against
    the same database file.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        *,
        events: EventBus | None = None,
        verify_folders: bool = False,
        notify_on_noop: bool = False,
    ) -> None:
        """Initialise with an open database connection.

        Args:
            conn: Open connection with the schema initialised
                (see multifolder.db.schema.initialize).
            events: Subscriber registry. A private one is created if omitted.
            verify_folders: Reject folder ids absent from the folder mirror.
            notify_on_noop: Emit ADDED even when the pair already existed.
        """
        self._conn = conn
        self.events = events if events is not None else EventBus()
        self.folders = FolderDirectory(conn)
        self._verify_folders = verify_folders
        self._notify_on_noop = notify_on_noop

    @classmethod
    def from_config(
        cls, conn: sqlite3.Connection, cfg: MembershipCfg, *, events: EventBus | None = None
    ) -> MembershipStore:
        """Build a store with write behaviour taken from the membership config section."""
        return cls(
            conn,
            events=events,
            verify_folders=cfg.verify_folders,
            notify_on_noop=cfg.notify_on_noop,
        )

    def subscribe(self, callback: Subscriber):
        """Register a membership-changed callback; returns an unsubscribe function."""
        return self.events.subscribe(callback)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_attachment_folders(self, attachment_id: object) -> list[int]:
        """Return the folder ids of *attachment_id*, ascending (empty if none)."""
        attachment_id = validate_id(attachment_id)
        rows = self._conn.execute(
            """
            SELECT DISTINCT folder_id FROM attachment_folder
            WHERE attachment_id = ? ORDER BY folder_id
            """,
            (attachment_id,),
        ).fetchall()
        return [r[0] for r in rows]

    def assigned_at(self, attachment_id: object) -> str | None:
        """Return when the store last wrote this attachment's memberships.

        None means the attachment was never assigned through the store, which
        distinguishes it from one explicitly set to no folders.
        """
        attachment_id = validate_id(attachment_id)
        row = self._conn.execute(
            "SELECT updated_at FROM attachment_state WHERE attachment_id = ?",
            (attachment_id,),
        ).fetchone()
        return row[0] if row else None

    def list_folder_attachments(self, folder_id: object) -> list[int]:
        """Return the attachment ids in *folder_id*, ascending."""
        folder_id = validate_id(folder_id, "folder")
        rows = self._conn.execute(
            """
            SELECT DISTINCT attachment_id FROM attachment_folder
            WHERE folder_id = ? ORDER BY attachment_id
            """,
            (folder_id,),
        ).fetchall()
        return [r[0] for r in rows]

    def count_by_folder(self) -> dict[int, int]:
        """Return {folder_id: number of attachments} for every non-empty folder."""
        rows = self._conn.execute(
            """
            SELECT folder_id, COUNT(DISTINCT attachment_id) AS n
            FROM attachment_folder GROUP BY folder_id ORDER BY folder_id
            """
        ).fetchall()
        return {r["folder_id"]: r["n"] for r in rows}

    def find_orphans(self) -> list[Membership]:
        """Return memberships whose folder is missing from the folder mirror.

        An empty mirror has not been imported yet, so nothing counts as orphaned.
        """
        if self.folders.is_empty():
            return []
        rows = self._conn.execute(
            """
            SELECT af.attachment_id, af.folder_id
            FROM attachment_folder af
            LEFT JOIN folders f ON f.id = af.folder_id
            WHERE f.id IS NULL
            ORDER BY af.attachment_id, af.folder_id
            """
        ).fetchall()
        return [Membership(attachment_id=r[0], folder_id=r[1]) for r in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_attachment_folders(
        self, attachment_id: object, folder_ids: Iterable[object]
    ) -> Outcome:
        """Replace the full membership set of *attachment_id* with *folder_ids*.

        Duplicates are dropped. An empty collection leaves the attachment
        uncategorized. Delete and inserts share one transaction: on failure the
        previous set is left intact.
        """
        attachment_id = validate_id(attachment_id)
        folders = normalize_folder_ids(folder_ids)

        try:
            with transaction(self._conn):
                if rejected := self._reject_unknown(folders):
                    return rejected
                self._conn.execute(
                    "DELETE FROM attachment_folder WHERE attachment_id = ?",
                    (attachment_id,),
                )
                self._conn.executemany(
                    "INSERT INTO attachment_folder (folder_id, attachment_id) VALUES (?, ?)",
                    [(f, attachment_id) for f in folders],
                )
                self._touch(attachment_id)
        except sqlite3.Error as exc:
            return Outcome.failure(f"Error setting folders for attachment {attachment_id}: {exc}")

        self.events.emit(MembershipEvent(attachment_id, tuple(folders), ChangeKind.SET))
        return Outcome.success()

    def add_attachment_to_folder(self, attachment_id: object, folder_id: object) -> Outcome:
        """Add one membership without touching the others. Existing pairs are a no-op."""
        attachment_id = validate_id(attachment_id)
        folder_id = validate_id(folder_id, "folder")

        try:
            with transaction(self._conn):
                if rejected := self._reject_unknown([folder_id]):
                    return rejected
                exists = self._conn.execute(
                    "SELECT 1 FROM attachment_folder WHERE attachment_id = ? AND folder_id = ?",
                    (attachment_id, folder_id),
                ).fetchone()
                if exists is None:
                    self._conn.execute(
                        "INSERT INTO attachment_folder (folder_id, attachment_id) VALUES (?, ?)",
                        (folder_id, attachment_id),
                    )
                    self._touch(attachment_id)
        except sqlite3.Error as exc:
            return Outcome.failure(
                f"Error adding attachment {attachment_id} to folder {folder_id}: {exc}"
            )

        if exists is None or self._notify_on_noop:
            self.events.emit(MembershipEvent(attachment_id, (folder_id,), ChangeKind.ADDED))
        return Outcome.success()

    def remove_attachment_from_folder(
        self, attachment_id: object, folder_id: object
    ) -> Outcome:
        """Delete exactly the (attachment, folder) pair. Absent pairs are a no-op."""
        attachment_id = validate_id(attachment_id)
        folder_id = validate_id(folder_id, "folder")

        try:
            with transaction(self._conn):
                cur = self._conn.execute(
                    "DELETE FROM attachment_folder WHERE attachment_id = ? AND folder_id = ?",
                    (attachment_id, folder_id),
                )
                deleted = cur.rowcount > 0
                if deleted:
                    self._touch(attachment_id)
        except sqlite3.Error as exc:
            return Outcome.failure(
                f"Error removing attachment {attachment_id} from folder {folder_id}: {exc}"
            )

        if deleted:
            self.events.emit(MembershipEvent(attachment_id, (folder_id,), ChangeKind.REMOVED))
        return Outcome.success()

    # ------------------------------------------------------------------
    # Cleanup after external deletes (never automatic)
    # ------------------------------------------------------------------

    def purge_attachment(self, attachment_id: object) -> int:
        """Forget an attachment deleted upstream. Returns rows removed.

        Raises sqlite3.Error on storage failure.
        """
        attachment_id = validate_id(attachment_id)
        with transaction(self._conn):
            cur = self._conn.execute(
                "DELETE FROM attachment_folder WHERE attachment_id = ?", (attachment_id,)
            )
            removed = cur.rowcount
            self._conn.execute(
                "DELETE FROM attachment_state WHERE attachment_id = ?", (attachment_id,)
            )
        if removed:
            self.events.emit(MembershipEvent(attachment_id, (), ChangeKind.SET))
        return removed

    def purge_folder(self, folder_id: object) -> list[int]:
        """Drop every membership of a folder deleted upstream.

        Returns the affected attachment ids. Raises sqlite3.Error on storage failure.
        """
        folder_id = validate_id(folder_id, "folder")
        with transaction(self._conn):
            affected = [
                r[0]
                for r in self._conn.execute(
                    """
                    SELECT DISTINCT attachment_id FROM attachment_folder
                    WHERE folder_id = ? ORDER BY attachment_id
                    """,
                    (folder_id,),
                ).fetchall()
            ]
            self._conn.execute("DELETE FROM attachment_folder WHERE folder_id = ?", (folder_id,))
            for attachment_id in affected:
                self._touch(attachment_id)
        for attachment_id in affected:
            self.events.emit(MembershipEvent(attachment_id, (folder_id,), ChangeKind.REMOVED))
        return affected

    def prune_orphans(self) -> list[Membership]:
        """Delete memberships pointing at folders missing from the mirror.

        Does nothing while the mirror is empty. Returns the removed memberships. Raises sqlite3.Error on storage failure.
        """
        with transaction(self._conn):
            orphans = self.find_orphans()
            self._conn.executemany(
                "DELETE FROM attachment_folder WHERE attachment_id = ? AND folder_id = ?",
                [(m.attachment_id, m.folder_id) for m in orphans],
            )
            for attachment_id in sorted({m.attachment_id for m in orphans}):
                self._touch(attachment_id)
        for m in orphans:
            self.events.emit(MembershipEvent(m.attachment_id, (m.folder_id,), ChangeKind.REMOVED))
        return orphans

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _touch(self, attachment_id: int) -> None:
        self._conn.execute(
            """
            INSERT INTO attachment_state (attachment_id, updated_at)
            VALUES (?, strftime('%Y-%m-%d %H:%M:%f', 'now'))
            ON CONFLICT(attachment_id) DO UPDATE SET updated_at = excluded.updated_at
            """,
            (attachment_id,),
        )

    def _reject_unknown(self, folder_ids: list[int]) -> Outcome | None:
        if not self._verify_folders or not folder_ids:
            return None
        if self.folders.is_empty():
            return Outcome.failure(
                "Folder mirror is empty; import folders before writing with verify_folders on"
            )
        missing = self.folders.missing(folder_ids)
        if missing:
            listed = ", ".join(str(f) for f in sorted(missing))
            return Outcome.failure(f"Unknown folder id(s): {listed}")
        return None
