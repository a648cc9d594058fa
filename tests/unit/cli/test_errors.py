"""Every CLI error message names a cause and an action."""

from __future__ import annotations

import pytest

from multifolder.cli.errors import (
    err_config,
    err_invalid_input,
    err_no_db,
    err_storage,
    err_write_failed,
    warn_orphans,
    warn_partial_failure,
)

MESSAGES = [
    err_no_db("x.db"),
    err_invalid_input("Invalid attachment id: 'abc'"),
    err_config("'membership.verify_folders' must be true or false"),
    err_write_failed(12, "disk I/O error"),
    err_storage("database is locked"),
    warn_partial_failure(1, 3),
    warn_orphans(4),
]


@pytest.mark.parametrize("message", MESSAGES)
def test_message_has_cause_and_action(message: str) -> None:
    cause, _, action = message.partition("\n")
    assert cause.strip()
    assert action.strip()


def test_user_text_is_escaped() -> None:
    assert "\\[bold]" in err_invalid_input("folder [bold]")


def test_write_failed_without_message() -> None:
    assert "unknown storage error" in err_write_failed(3, None)


def test_partial_failure_counts() -> None:
    assert "1 of 3 attachments" in warn_partial_failure(1, 3)
