from __future__ import annotations

import typer

from mpr.cli.commands._helpers import exit_with_code
from mpr.cli.commands.release_common import (
    AndroidPackageOpt,
    BuildIosOpt,
    DesktopPackageOpt,
    IosPackageOpt,
    OnlyOpt,
    PublishAndroidOpt,
    PublishIosOpt,
    ReleaseTypeOpt,
    TargetBranchOpt,
    WebPackageOpt,
    build_request,
)
from mpr.cli.context import build_context
from mpr.output.errors import print_run_outcome, run_exit_code
from mpr.release.service import run_release


def run(
    release_type: ReleaseTypeOpt = None,
    target_branch: TargetBranchOpt = None,
    android_package: AndroidPackageOpt = None,
    ios_package: IosPackageOpt = None,
    desktop_package: DesktopPackageOpt = None,
    web_package: WebPackageOpt = None,
    publish_android: PublishAndroidOpt = None,
    build_ios: BuildIosOpt = None,
    publish_ios: PublishIosOpt = None,
    only: OnlyOpt = None,
    version: str | None = typer.Option(
        None, "--version-name", help="Version name (default: gradle versionFile)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Build everything but do not create the GitHub release"
    ),
) -> None:
    """Build, sign and publish every platform, then create the pre-release."""
    ctx = build_context()
    request = build_request(
        ctx,
        release_type=release_type,
        target_branch=target_branch,
        android_package=android_package,
        ios_package=ios_package,
        desktop_package=desktop_package,
        web_package=web_package,
        publish_android=publish_android,
        build_ios=build_ios,
        publish_ios=publish_ios,
        only=only,
        version=version,
        dry_run=dry_run,
    )

    outcome = run_release(
        request,
        ctx.config,
        console=ctx.console,
        secret_store=ctx.secret_store,
    )
    print_run_outcome(outcome, ctx.console)
    exit_with_code(run_exit_code(outcome))
