"""Tests for multifolder assign."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest
from typer.testing import CliRunner

from multifolder.cli.main import app
from multifolder.db.connection import Database
from multifolder.db.schema import initialize
from multifolder.store import MembershipStore

runner = CliRunner()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_db(path: Path) -> tuple[sqlite3.Connection, MembershipStore]:
    conn = Database(path).connect()
    initialize(conn)
    return conn, MembershipStore(conn)


def _flat(output: str) -> str:
    return " ".join(output.split())


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / ".multifolder.db"
    conn, _ = _make_db(path)
    conn.close()
    return path


def _folders(db_path: Path, attachment_id: int) -> list[int]:
    conn, store = _make_db(db_path)
    try:
        return store.get_attachment_folders(attachment_id)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def test_assign_set(db_path: Path) -> None:
    result = runner.invoke(app, ["assign", "-a", "12", "-f", "5,3,5", "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert _folders(db_path, 12) == [3, 5]
    assert "folders 3, 5" in _flat(result.output)


def test_assign_add_keeps_existing(db_path: Path) -> None:
    runner.invoke(app, ["assign", "-a", "12", "-f", "1", "--db", str(db_path)])
    result = runner.invoke(
        app, ["assign", "-a", "12", "-f", "2", "-f", "3", "--mode", "add", "--db", str(db_path)]
    )
    assert result.exit_code == 0, result.output
    assert _folders(db_path, 12) == [1, 2, 3]


def test_assign_remove(db_path: Path) -> None:
    runner.invoke(app, ["assign", "-a", "12", "-f", "1,2,3", "--db", str(db_path)])
    result = runner.invoke(app, ["assign", "-a", "12", "-f", "2", "-m", "remove", "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert _folders(db_path, 12) == [1, 3]


def test_assign_set_without_folders_uncategorizes(db_path: Path) -> None:
    runner.invoke(app, ["assign", "-a", "12", "-f", "1", "--db", str(db_path)])
    result = runner.invoke(app, ["assign", "-a", "12", "--db", str(db_path)])
    assert result.exit_code == 0, result.output
    assert _folders(db_path, 12) == []
    assert "uncategorized" in result.output


def test_assign_bulk_prints_tally(db_path: Path) -> None:
    result = runner.invoke(
        app, ["assign", "-a", "1", "-a", "2", "-f", "7", "--mode", "add", "--db", str(db_path)]
    )
    assert result.exit_code == 0, result.output
    assert "Saved: 2" in _flat(result.output)
    assert _folders(db_path, 1) == [7]
    assert _folders(db_path, 2) == [7]


# ---------------------------------------------------------------------------
# Invalid input
# ---------------------------------------------------------------------------


def test_assign_requires_attachment(db_path: Path) -> None:
    result = runner.invoke(app, ["assign", "-f", "1", "--db", str(db_path)])
    assert result.exit_code == 1
    assert "No --attachment" in result.output


@pytest.mark.parametrize(
    "args",
    [
        ["-a", "0", "-f", "1"],
        ["-a", "abc", "-f", "1"],
        ["-a", "1", "-f", "1,x"],
        ["-a", "1", "-f", "1", "--mode", "move"],
        ["-a", "1", "--mode", "add"],
    ],
)
def test_assign_invalid_input_exits_1(db_path: Path, args: list[str]) -> None:
    result = runner.invoke(app, ["assign", *args, "--db", str(db_path)])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert _folders(db_path, 1) == []


def test_assign_no_db_exits_1(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(app, ["assign", "-a", "1", "-f", "1", "--db", str(tmp_path / "missing.db")])
    assert result.exit_code == 1
    assert "multifolder init" in result.output


def test_assign_uses_configured_db(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    conn, _ = _make_db(tmp_path / "media.db")
    conn.close()
    (tmp_path / "multifolder.yaml").write_text("database:\n  path: media.db\n", encoding="utf-8")

    result = runner.invoke(app, ["assign", "-a", "4", "-f", "2"])

    assert result.exit_code == 0, result.output
    assert _folders(tmp_path / "media.db", 4) == [2]


# ---------------------------------------------------------------------------
# Storage failures
# ---------------------------------------------------------------------------


def _fail_inserts_for_attachment(db_path: Path, attachment_id: int) -> None:
    conn = Database(db_path).connect()
    conn.execute(
        f"""
        CREATE TRIGGER injected_failure BEFORE INSERT ON attachment_folder
        WHEN NEW.attachment_id = {attachment_id}
        BEGIN SELECT RAISE(ABORT, 'injected failure'); END
        """
    )
    conn.commit()
    conn.close()


def test_assign_single_failure_exits_1(db_path: Path) -> None:
    runner.invoke(app, ["assign", "-a", "2", "-f", "1", "--db", str(db_path)])
    _fail_inserts_for_attachment(db_path, 2)

    result = runner.invoke(app, ["assign", "-a", "2", "-f", "9", "--db", str(db_path)])

    assert result.exit_code == 1
    assert "previous folders are unchanged" in _flat(result.output)
    assert _folders(db_path, 2) == [1]


def test_assign_partial_failure_exits_3(db_path: Path) -> None:
    _fail_inserts_for_attachment(db_path, 2)

    result = runner.invoke(
        app, ["assign", "-a", "1", "-a", "2", "-a", "3", "-f", "7", "-m", "add", "--db", str(db_path)]
    )

    assert result.exit_code == 3
    flat = _flat(result.output)
    assert "Saved: 2" in flat
    assert "Failed: 1" in flat
    assert "1 of 3 attachments were not updated" in flat
    assert _folders(db_path, 1) == [7]
    assert _folders(db_path, 2) == []
    assert _folders(db_path, 3) == [7]
