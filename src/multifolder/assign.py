"""Mode policy (set / add / remove) and bulk application across attachments.

Every mode funnels into MembershipStore.set_attachment_folders, so the unit an
outside reader can observe changing is always one attachment's full set:

  set     folder_ids passed straight through
  add     current | folder_ids   (read, union, replace)
  remove  current - folder_ids   (read, subtract, replace)

Bulk calls give each attachment its own transaction. A failure on one item
never rolls back the others; the caller gets a per-item tally.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from multifolder.db.models import Outcome
from multifolder.ids import InvalidIdError, normalize_folder_ids, validate_id
from multifolder.store import MembershipStore


class InvalidModeError(ValueError):
    """Raised for an unknown assignment mode or a mode missing its folders."""


class Mode(str, Enum):
    SET = "set"
    ADD = "add"
    REMOVE = "remove"

    @classmethod
    def parse(cls, value: str | Mode) -> Mode:
        """Return the Mode for *value* (case-insensitive), or raise InvalidModeError."""
        if isinstance(value, Mode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise InvalidModeError(f"Unknown mode '{value}' (expected one of: {allowed})") from None


@dataclass(frozen=True)
class ItemResult:
    """Outcome for one attachment in a bulk call."""

    attachment_id: int
    ok: bool
    folder_ids: tuple[int, ...] = ()
    error: str | None = None


@dataclass
class BulkResult:
    """Per-attachment results of a bulk assignment."""

    items: list[ItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for i in self.items if i.ok)

    @property
    def failed(self) -> int:
        return sum(1 for i in self.items if not i.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def failures(self) -> list[ItemResult]:
        return [i for i in self.items if not i.ok]


def resolve_target(current: Iterable[int], folder_ids: list[int], mode: Mode) -> list[int]:
    """Return the full set an attachment should hold after applying *mode*."""
    if mode is Mode.SET:
        return sorted(set(folder_ids))
    if mode is Mode.ADD:
        return sorted(set(current) | set(folder_ids))
    return sorted(set(current) - set(folder_ids))


def apply_mode(
    store: MembershipStore,
    attachment_id: object,
    folder_ids: Iterable[object],
    mode: str | Mode = Mode.SET,
) -> Outcome:
    """Apply *mode* to a single attachment as one atomic replace.

    Raises:
        InvalidIdError: An id is not a positive integer.
        InvalidModeError: Unknown mode, or add/remove without any folder ids.
    """
    attachment_id = validate_id(attachment_id)
    folders = normalize_folder_ids(folder_ids)
    outcome, _ = _apply(store, attachment_id, folders, _check_mode(mode, folders))
    return outcome


def apply_bulk(
    store: MembershipStore,
    attachment_ids: Iterable[object],
    folder_ids: Iterable[object],
    mode: str | Mode = Mode.ADD,
) -> BulkResult:
    """Apply *mode* with the same *folder_ids* to every attachment.

    Arguments are validated up front, so a malformed id raises before any
    attachment is written. After that each attachment succeeds or fails on
    its own; read failures for one attachment are recorded, not raised.
    """
    ids = list(dict.fromkeys(validate_id(a) for a in attachment_ids))
    if not ids:
        raise InvalidIdError("At least one attachment id is required")
    folders = normalize_folder_ids(folder_ids)
    mode = _check_mode(mode, folders)

    result = BulkResult()
    for attachment_id in ids:
        try:
            outcome, target = _apply(store, attachment_id, folders, mode)
        except sqlite3.Error as exc:
            error = f"Error reading folders for attachment {attachment_id}: {exc}"
            result.items.append(ItemResult(attachment_id, False, error=error))
            continue

        if outcome:
            result.items.append(ItemResult(attachment_id, True, folder_ids=tuple(target)))
        else:
            result.items.append(ItemResult(attachment_id, False, error=outcome.error))
    return result


def _check_mode(mode: str | Mode, folders: list[int]) -> Mode:
    mode = Mode.parse(mode)
    if mode is not Mode.SET and not folders:
        raise InvalidModeError(f"Mode '{mode.value}' requires at least one folder id")
    return mode


def _apply(
    store: MembershipStore, attachment_id: int, folders: list[int], mode: Mode
) -> tuple[Outcome, list[int]]:
    if mode is Mode.SET:
        target = folders
    else:
        target = resolve_target(store.get_attachment_folders(attachment_id), folders, mode)
    return store.set_attachment_folders(attachment_id, target), target
