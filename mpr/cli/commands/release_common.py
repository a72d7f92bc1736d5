"""Trigger options shared by `run` and `plan`.

Every option falls back to the matching `mpr.toml` value, so CI can pass only
what differs from the project defaults.
"""

from __future__ import annotations

from typing import Annotated, NoReturn, TypeVar

import typer

from mpr.cli.context import CLIContext
from mpr.core.errors import ErrorCode
from mpr.release import config as rc
from mpr.release.contracts import ReleaseRequest
from mpr.release.model import ReleaseType

ReleaseTypeOpt = Annotated[
    str | None, typer.Option("--release-type", help="internal (default) or beta")
]
TargetBranchOpt = Annotated[
    str | None, typer.Option("--target-branch", help="Branch the release notes/tag target")
]
AndroidPackageOpt = Annotated[
    str | None, typer.Option("--android-package", help="Gradle module of the Android app")
]
IosPackageOpt = Annotated[
    str | None, typer.Option("--ios-package", help="Module (directory) of the iOS app")
]
DesktopPackageOpt = Annotated[
    str | None, typer.Option("--desktop-package", help="Gradle module of the desktop app")
]
WebPackageOpt = Annotated[
    str | None, typer.Option("--web-package", help="Gradle module of the web app")
]
PublishAndroidOpt = Annotated[
    bool | None,
    typer.Option("--publish-android/--no-publish-android", help="Publish to the Play Store"),
]
BuildIosOpt = Annotated[
    bool | None, typer.Option("--build-ios/--no-build-ios", help="Build and distribute iOS")
]
PublishIosOpt = Annotated[
    bool | None, typer.Option("--publish-ios/--no-publish-ios", help="Publish to the App Store")
]
OnlyOpt = Annotated[
    list[str] | None,
    typer.Option("--only", help=f"Restrict to platform ids ({', '.join(rc.PLATFORM_ORDER)})"),
]


def exit_release(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def parse_release_type(value: str) -> ReleaseType:
    match value:
        case "internal" | "beta":
            return value
        case _:
            exit_release(
                f"invalid release type: {value} (expected internal or beta)",
                code=ErrorCode.USER_ERROR,
            )


def _required(value: str | None, *, flag: str, key: str) -> str:
    if not value:
        exit_release(
            f"missing {flag} (or set {key} in mpr.toml)",
            code=ErrorCode.USER_ERROR,
        )
    return value


T = TypeVar("T")


def _pick(cli_value: T | None, config_value: T) -> T:
    return config_value if cli_value is None else cli_value


def build_request(
    ctx: CLIContext,
    *,
    release_type: str | None,
    target_branch: str | None,
    android_package: str | None,
    ios_package: str | None,
    desktop_package: str | None,
    web_package: str | None,
    publish_android: bool | None,
    build_ios: bool | None,
    publish_ios: bool | None,
    only: list[str] | None,
    version: str | None = None,
    dry_run: bool = False,
) -> ReleaseRequest:
    cfg = ctx.config
    return ReleaseRequest(
        project_root=ctx.project_root,
        release_type=parse_release_type(_pick(release_type, cfg.release.release_type)),
        target_branch=_pick(target_branch, cfg.release.target_branch),
        android_package_name=_required(
            _pick(android_package, cfg.android.package),
            flag="--android-package",
            key="platforms.android.package",
        ),
        ios_package_name=_required(
            _pick(ios_package, cfg.ios.package),
            flag="--ios-package",
            key="platforms.ios.package",
        ),
        desktop_package_name=_required(
            _pick(desktop_package, cfg.desktop.package),
            flag="--desktop-package",
            key="platforms.desktop.package",
        ),
        web_package_name=_required(
            _pick(web_package, cfg.web.package),
            flag="--web-package",
            key="platforms.web.package",
        ),
        publish_android=_pick(publish_android, cfg.android.publish),
        build_ios=_pick(build_ios, cfg.ios.build),
        publish_ios=_pick(publish_ios, cfg.ios.publish),
        only=frozenset(only) if only else None,
        version_override=version,
        dry_run=dry_run,
    )
