from __future__ import annotations

import typer

from mpr.cli.commands._helpers import exit_on_error
from mpr.cli.commands.release_common import ReleaseTypeOpt, parse_release_type
from mpr.cli.context import build_context
from mpr.core.errors import ErrorCode
from mpr.core.result import Err
from mpr.release.versioning import GitVersionPolicy


def version(
    release_type: ReleaseTypeOpt = None,
    name: str | None = typer.Option(None, "--version-name", help="Version name override"),
) -> None:
    """Print the version name and code the next release would use."""
    ctx = build_context()
    policy = GitVersionPolicy(
        project_root=ctx.project_root,
        release_type=parse_release_type(release_type or ctx.config.release.release_type),
        console=ctx.console,
        override=name,
        version_task=ctx.config.release.version_task,
        version_file=ctx.config.release.version_file,
    )
    result = policy.resolve()
    exit_on_error(result, ctx, ErrorCode.ENV_ERROR)
    if isinstance(result, Err):
        return
    typer.echo(f"version={result.value.name}")
    typer.echo(f"version-code={result.value.code}")
