"""multifolder CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from multifolder.cli.assign import assign_cmd
from multifolder.cli.folders import folders_app
from multifolder.cli.init import init_cmd
from multifolder.cli.prune import prune_cmd, purge_cmd
from multifolder.cli.show import folder_cmd, show_cmd
from multifolder.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("multifolder")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"multifolder {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="multifolder",
    help=(
        "multifolder — put one media file in several folders.\n\n"
        "  multifolder assign  Set, add or remove folders for attachments.\n"
        "  multifolder show    List the folders of an attachment.\n"
        "  multifolder folders Import or list the folder mirror."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """multifolder — many-to-many folder membership for media attachments."""


app.command("init")(init_cmd)
app.command("assign")(assign_cmd)
app.command("show")(show_cmd)
app.command("folder")(folder_cmd)
app.command("status")(status_cmd)
app.command("prune")(prune_cmd)
app.command("purge")(purge_cmd)
app.add_typer(folders_app, name="folders")


@app.command("version")
def version_cmd() -> None:
    """Show the installed multifolder version."""
    typer.echo(f"multifolder {_installed_version()}")


if __name__ == "__main__":
    app()
