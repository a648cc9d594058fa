"""Identifier validation for attachment and folder ids.

Ids are opaque positive integers owned by external systems. Validation
happens before any storage call; nothing here touches the database.
"""

from __future__ import annotations

from collections.abc import Iterable

# Largest value SQLite can bind as an INTEGER (signed 64-bit).
MAX_ID = 2**63 - 1


class InvalidIdError(ValueError):
    """Raised when an attachment or folder id is not a positive integer."""


def validate_id(value: object, kind: str = "attachment") -> int:
    """Return *value* as a positive int, or raise InvalidIdError.

    Accepts ints and digit-only strings (form and CLI input). Booleans are
    rejected even though they subclass int.
    """
    if isinstance(value, bool):
        raise InvalidIdError(f"Invalid {kind} id: {value!r}")
    if isinstance(value, int):
        ident = value
    elif isinstance(value, str) and value.strip().isdecimal():
        try:
            ident = int(value.strip())
        except ValueError:
            # Beyond the interpreter's int conversion digit limit.
            raise InvalidIdError(f"Invalid {kind} id: too many digits") from None
    else:
        raise InvalidIdError(f"Invalid {kind} id: {value!r}")
    if ident <= 0:
        raise InvalidIdError(f"Invalid {kind} id: {value!r} (must be > 0)")
    if ident > MAX_ID:
        raise InvalidIdError(f"Invalid {kind} id: {value!r} (must be <= {MAX_ID})")
    return ident


def normalize_folder_ids(folder_ids: Iterable[object]) -> list[int]:
    """Validate, deduplicate and sort *folder_ids* ascending."""
    if isinstance(folder_ids, (str, bytes)):
        raise InvalidIdError(
            f"folder_ids must be a collection of ids, not {type(folder_ids).__name__}; "
            "use parse_folder_ids() for comma-separated input"
        )
    return sorted({validate_id(f, "folder") for f in folder_ids})


def parse_folder_ids(raw: str) -> list[int]:
    """Parse the comma-separated form used by attachment edit forms.

    Examples:
        "3, 5,5" -> [3, 5]
        ""       -> []
    """
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    return normalize_folder_ids(parts)
