from __future__ import annotations

import os
from pathlib import Path

import typer

from mpr import __version__
from mpr.cli.commands.plan_cmd import plan
from mpr.cli.commands.run_cmd import run
from mpr.cli.commands.version_cmd import version
from mpr.cli.context import CONFIG_PATH_ENV, PROJECT_ROOT_ENV
from mpr.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(run)
app.command()(plan)
app.command()(version)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    show_version: bool = typer.Option(  # handled eagerly by _show_version
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    project: Path | None = typer.Option(
        None,
        "--project",
        help="Root of the Kotlin Multiplatform project (default: current directory)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (default: <project>/mpr.toml)",
    ),
) -> None:
    if project is not None:
        try:
            root = project.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --project: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir():
            typer.echo(f"error: --project '{root}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[PROJECT_ROOT_ENV] = str(root)

    if config is not None:
        os.environ[CONFIG_PATH_ENV] = str(config.expanduser())


def main() -> None:
    app()
