"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from multifolder.db.connection import Database
from multifolder.db.schema import initialize
from multifolder.store import MembershipStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.multifolder config and MULTIFOLDER_* env."""
    monkeypatch.setattr(
        "multifolder.config._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml"
    )
    monkeypatch.delenv("MULTIFOLDER_DB", raising=False)
    monkeypatch.delenv("MULTIFOLDER_VERIFY_FOLDERS", raising=False)


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".multifolder.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def store(tmp_db):
    return MembershipStore(tmp_db)


@pytest.fixture
def add_folders():
    """Return a helper that populates the folder mirror with (id, name) pairs."""

    def _add(conn, *folders: tuple[int, str]) -> None:
        conn.executemany("INSERT INTO folders (id, name) VALUES (?, ?)", folders)
        conn.commit()

    return _add


@pytest.fixture
def fail_inserts():
    """Return a helper that makes relation inserts matching a SQL condition abort."""
    return _install_trigger


def _install_trigger(conn, condition: str) -> None:
    conn.execute(
        f"""
        CREATE TRIGGER injected_failure BEFORE INSERT ON attachment_folder
        WHEN {condition}
        BEGIN SELECT RAISE(ABORT, 'injected failure'); END
        """
    )
    conn.commit()
