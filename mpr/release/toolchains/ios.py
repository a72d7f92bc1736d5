"""iOS: xcodebuild archive/export and Firebase App Distribution.

App Store publishing is not supported yet: the publish stage reports
`StageNotImplemented`, which ends the job as NotImplemented (not Failed).
"""

from __future__ import annotations

import plistlib

from mpr.core.result import Err, Ok
from mpr.release import config as rc
from mpr.release.errors import StageNotImplemented
from mpr.release.states import Stage
from mpr.release.toolchains import firebase
from mpr.release.toolchains.base import (
    StageContext,
    StageResult,
    files_with_suffix,
    nothing_to_do,
)

_ARCHIVE_NAME = "app.xcarchive"
_EXPORT_DIR = "ipa"
_EXPORT_OPTIONS = "ExportOptions.plist"


class IosToolchain:
    def build(self, ctx: StageContext) -> StageResult:
        package = ctx.job.package_name
        workspace = ctx.job.option("workspace") or f"{package}/iosApp.xcworkspace"
        scheme = ctx.job.option("scheme") or rc.IOS_DEFAULT_SCHEME
        result = ctx.run(
            [
                "xcodebuild",
                "-workspace",
                workspace,
                "-scheme",
                scheme,
                "-configuration",
                "Release",
                "-archivePath",
                str(ctx.work_dir / _ARCHIVE_NAME),
                "archive",
            ]
        )
        if isinstance(result, Err):
            return result
        return nothing_to_do()

    def sign(self, ctx: StageContext) -> StageResult:
        options_path = ctx.work_dir / _EXPORT_OPTIONS
        try:
            ctx.work_dir.mkdir(parents=True, exist_ok=True)
            with options_path.open("wb") as f:
                plistlib.dump({"method": "ad-hoc", "compileBitcode": False}, f)
        except OSError as e:
            return ctx.fail(f"failed to write {_EXPORT_OPTIONS}: {e}")

        result = ctx.run(
            [
                "xcodebuild",
                "-exportArchive",
                "-archivePath",
                str(ctx.work_dir / _ARCHIVE_NAME),
                "-exportPath",
                str(ctx.work_dir / _EXPORT_DIR),
                "-exportOptionsPlist",
                str(options_path),
            ]
        )
        if isinstance(result, Err):
            return result
        return nothing_to_do()

    def package(self, ctx: StageContext) -> StageResult:
        ipas = files_with_suffix(ctx.work_dir / _EXPORT_DIR, ".ipa")
        if not ipas:
            return ctx.fail("no IPA exported", hint=str(ctx.work_dir / _EXPORT_DIR))

        app_id = ctx.job.option("firebase_app_id")
        if app_id is None:
            return ctx.fail(
                "cannot determine the Firebase app id",
                hint="Set platforms.ios.firebase_app_id.",
            )

        distributed = firebase.distribute(ctx, ipas[0], app_id=app_id)
        if isinstance(distributed, Err):
            return distributed
        return Ok(tuple(ctx.artifact("ipa", ipa) for ipa in ipas))

    def publish(self, ctx: StageContext) -> StageResult:
        return Err(StageNotImplemented(stage=Stage.PUBLISHING, feature="App Store publishing"))
