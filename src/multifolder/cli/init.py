"""multifolder init — create the database and a project config.

Creates:
  .multifolder.db          — membership database with schema applied
                             (or --db, database.path, MULTIFOLDER_DB)
  multifolder.yaml         — project config (database: + membership: sections)
  ~/.multifolder/config.yaml — global defaults (only with --global, mode 0o600)

Re-running is safe: migrations are idempotent and an existing
multifolder.yaml is left untouched.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from multifolder.cli.errors import err_config
from multifolder.config import ConfigError, ensure_global_config, load_config
from multifolder.db.connection import Database
from multifolder.db.migrations import current_version
from multifolder.db.schema import initialize

console = Console()

_DEFAULT_PROJECT_DIR = Path(".")


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = _DEFAULT_PROJECT_DIR,
    db: Annotated[
        Path | None,
        typer.Option("--db", help="Database file to create. Defaults to database.path from config."),
    ] = None,
    global_config: Annotated[
        bool,
        typer.Option("--global", help="Also create ~/.multifolder/config.yaml if missing."),
    ] = False,
) -> None:
    """Create the membership database and multifolder.yaml."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    if db is not None:
        db_path = db
    else:
        try:
            cfg = load_config(project_dir)
        except ConfigError as exc:
            console.print(err_config(str(exc)))
            raise typer.Exit(1) from exc
        db_path = Path(cfg.database.path)
        if not db_path.is_absolute():
            db_path = project_dir / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    existed = db_path.exists()

    version = _create_database(db_path)
    state = "migrated" if existed else "created"
    console.print(f"  [green]✓[/] {escape(str(db_path))} ({state}, schema v{version})")

    cfg_path = project_dir / "multifolder.yaml"
    if cfg_path.exists():
        console.print("  [dim]•[/] multifolder.yaml already present — left unchanged")
    else:
        _create_project_yaml(cfg_path, _yaml_db_path(db_path, project_dir))
        console.print("  [green]✓[/] multifolder.yaml")

    if global_config:
        path = ensure_global_config()
        console.print(f"  [green]✓[/] {path} (global config)")

    console.print("\nNext steps:")
    console.print("  1. multifolder assign -a <attachment> -f <folders> --mode add")
    console.print("  2. multifolder show <attachment>")
    console.print("  3. multifolder status")


def _create_database(db_path: Path) -> int:
    conn = Database(db_path).connect()
    try:
        initialize(conn)
        return current_version(conn)
    finally:
        conn.close()


def _yaml_db_path(db_path: Path, project_dir: Path) -> str:
    try:
        return str(db_path.resolve().relative_to(project_dir))
    except ValueError:
        return str(db_path.resolve())


def _create_project_yaml(path: Path, db_path: str) -> None:
    content = (
        "database:\n"
        f"  path: {json.dumps(db_path)}\n"
        "  busy_timeout: 5.0\n"
        "\n"
        "membership:\n"
        "  # Reject folder ids that are not in the folders table.\n"
        "  verify_folders: false\n"
        "  # Emit an 'added' event even when the file was already in the folder.\n"
        "  notify_on_noop: false\n"
    )
    path.write_text(content, encoding="utf-8")
