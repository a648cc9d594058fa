"""Domain models for the multifolder database layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass
class Folder:
    id: int
    name: str
    parent: int = 0
    ord: int = 0


@dataclass(frozen=True)
class Membership:
    attachment_id: int
    folder_id: int


class ChangeKind(str, Enum):
    """What a membership mutation did."""

    SET = "set"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class MembershipEvent:
    """Notification delivered to subscribers after a committed mutation.

    For SET, *folder_ids* is the complete new membership set; for ADDED and
    REMOVED it holds the single folder that changed.
    """

    attachment_id: int
    folder_ids: tuple[int, ...]
    kind: ChangeKind


@dataclass(frozen=True)
class Outcome:
    """Result of a store mutation. Truthy on success."""

    ok: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> Outcome:
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> Outcome:
        return cls(ok=False, error=error)
