"""multifolder database layer."""

from multifolder.db.connection import Database, transaction
from multifolder.db.migrations import MIGRATIONS, current_version, run_migrations
from multifolder.db.schema import initialize

__all__ = [
    "Database",
    "transaction",
    "initialize",
    "run_migrations",
    "current_version",
    "MIGRATIONS",
]
