"""Tests for mode policy and bulk application."""

from __future__ import annotations

import pytest

from multifolder.assign import (
    BulkResult,
    InvalidModeError,
    ItemResult,
    Mode,
    apply_bulk,
    apply_mode,
    resolve_target,
)
from multifolder.db.models import ChangeKind
from multifolder.ids import InvalidIdError


# ------------------------------------------------------------------
# Mode parsing
# ------------------------------------------------------------------

@pytest.mark.parametrize("raw, expected", [("set", Mode.SET), ("ADD", Mode.ADD), (" remove ", Mode.REMOVE)])
def test_mode_parse(raw, expected):
    assert Mode.parse(raw) is expected


def test_mode_parse_passes_through_mode():
    assert Mode.parse(Mode.ADD) is Mode.ADD


def test_mode_parse_unknown():
    with pytest.raises(InvalidModeError, match="expected one of: set, add, remove"):
        Mode.parse("move")


# ------------------------------------------------------------------
# resolve_target
# ------------------------------------------------------------------

def test_resolve_target_modes():
    assert resolve_target([1, 2], [2, 3], Mode.SET) == [2, 3]
    assert resolve_target([1, 2], [2, 3], Mode.ADD) == [1, 2, 3]
    assert resolve_target([1, 2], [2, 3], Mode.REMOVE) == [1]


# ------------------------------------------------------------------
# apply_mode
# ------------------------------------------------------------------

def test_set_mode_passes_through(store):
    store.set_attachment_folders(1, [1, 2])
    assert apply_mode(store, 1, [5], "set")
    assert store.get_attachment_folders(1) == [5]


def test_set_mode_empty_uncategorizes(store):
    store.set_attachment_folders(1, [1, 2])
    assert apply_mode(store, 1, [], Mode.SET)
    assert store.get_attachment_folders(1) == []


def test_add_mode_unions(store):
    store.set_attachment_folders(1, [1, 2])
    assert apply_mode(store, 1, [2, 3, 4], "add")
    assert store.get_attachment_folders(1) == [1, 2, 3, 4]


def test_add_mode_goes_through_single_set(store):
    store.set_attachment_folders(1, [1])
    received = []
    store.subscribe(received.append)
    apply_mode(store, 1, [2, 3], "add")
    assert [(e.kind, e.folder_ids) for e in received] == [(ChangeKind.SET, (1, 2, 3))]


def test_remove_mode_subtracts(store):
    store.set_attachment_folders(1, [1, 2, 3])
    assert apply_mode(store, 1, [2, 9], "remove")
    assert store.get_attachment_folders(1) == [1, 3]


@pytest.mark.parametrize("mode", ["add", "remove"])
def test_add_remove_require_folders(store, mode):
    store.set_attachment_folders(1, [1])
    with pytest.raises(InvalidModeError):
        apply_mode(store, 1, [], mode)
    assert store.get_attachment_folders(1) == [1]


def test_apply_mode_failure_keeps_previous(store, tmp_db, fail_inserts):
    store.set_attachment_folders(1, [1])
    fail_inserts(tmp_db, "NEW.folder_id = 2")
    outcome = apply_mode(store, 1, [2], "add")
    assert not outcome
    assert store.get_attachment_folders(1) == [1]


# ------------------------------------------------------------------
# apply_bulk
# ------------------------------------------------------------------

def test_bulk_add_to_every_attachment(store):
    store.set_attachment_folders(1, [1])
    result = apply_bulk(store, [1, 2, 3], [7], "add")
    assert result.ok
    assert result.succeeded == 3
    assert store.get_attachment_folders(1) == [1, 7]
    assert store.get_attachment_folders(2) == [7]
    assert [i.folder_ids for i in result.items] == [(1, 7), (7,), (7,)]


def test_bulk_partial_failure_reported_per_item(store, tmp_db, fail_inserts):
    fail_inserts(tmp_db, "NEW.attachment_id = 2")
    store.set_attachment_folders(3, [1])

    result = apply_bulk(store, [1, 2, 3], [7], "add")

    assert [(i.attachment_id, i.ok) for i in result.items] == [(1, True), (2, False), (3, True)]
    assert result.succeeded == 2
    assert result.failed == 1
    assert not result.ok
    assert "injected failure" in result.failures()[0].error
    assert store.get_attachment_folders(1) == [7]
    assert store.get_attachment_folders(3) == [1, 7]


def test_bulk_deduplicates_attachments(store):
    result = apply_bulk(store, [4, "4", 5], [1], "set")
    assert [i.attachment_id for i in result.items] == [4, 5]


def test_bulk_invalid_id_raises_before_any_write(store):
    with pytest.raises(InvalidIdError):
        apply_bulk(store, [1, 0], [7], "add")
    assert store.get_attachment_folders(1) == []


def test_bulk_oversized_id_raises_before_any_write(store):
    store.set_attachment_folders(1, [2])
    with pytest.raises(InvalidIdError):
        apply_bulk(store, [1, 2**63, 3], [7], "add")
    assert store.get_attachment_folders(1) == [2]
    assert store.assigned_at(3) is None


def test_bulk_oversized_folder_id_rejected(store):
    with pytest.raises(InvalidIdError):
        apply_bulk(store, [1], [2**63], "set")


def test_bulk_requires_attachments(store):
    with pytest.raises(InvalidIdError):
        apply_bulk(store, [], [7], "add")


def test_bulk_remove(store):
    store.set_attachment_folders(1, [1, 2])
    store.set_attachment_folders(2, [2])
    result = apply_bulk(store, [1, 2], [2], "remove")
    assert result.ok
    assert store.get_attachment_folders(1) == [1]
    assert store.get_attachment_folders(2) == []


def test_bulk_result_tally():
    result = BulkResult(
        items=[ItemResult(1, True), ItemResult(2, False, error="x"), ItemResult(3, False)]
    )
    assert result.succeeded == 1
    assert result.failed == 2
    assert [i.attachment_id for i in result.failures()] == [2, 3]
