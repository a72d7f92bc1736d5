from __future__ import annotations

from mpr.cli.commands._helpers import exit_on_error
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
from mpr.core.errors import ErrorCode
from mpr.core.result import Err
from mpr.output.console import Style
from mpr.release.credentials import missing_secrets
from mpr.release.descriptors import build_jobs


def plan(
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
) -> None:
    """Show which jobs would run and which secrets they are missing (no side effects)."""
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
    )

    jobs = build_jobs(request, ctx.config)
    exit_on_error(jobs, ctx, ErrorCode.USER_ERROR)
    if isinstance(jobs, Err):
        return

    ctx.console.header(f"Plan ({request.release_type}, target {request.target_branch})")
    blocked = False
    for job in jobs.value:
        if not job.enabled:
            ctx.console.print(f"  {job.platform_id}: skipped", Style.DIM)
            continue

        stages = "build, sign, package" + (", publish" if job.publish_enabled else "")
        missing = missing_secrets(job, ctx.secret_store)
        if missing:
            blocked = True
            ctx.console.print(
                f"  {job.platform_id} ({job.package_name}): {stages}; "
                f"missing secrets: {', '.join(missing)}",
                Style.WARNING,
            )
        else:
            ctx.console.print(f"  {job.platform_id} ({job.package_name}): {stages}")

    if blocked:
        ctx.console.warning("jobs with missing secrets will fail before building")
