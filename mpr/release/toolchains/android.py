"""Android: Gradle build, apksigner, Firebase App Distribution, Play Store.

- build:   `assembleRelease` produces unsigned APKs per flavor
- sign:    the release keystore signs every `*-unsigned.apk` with apksigner
- package: signed APKs under `apk/<flavor>/release/` become artifacts and the
           prod build (or the first one) goes to Firebase App Distribution
- publish: `bundleProdRelease` signed with the upload key, then fastlane
           `supply` on the `internal` or `beta` track
"""

from __future__ import annotations

from mpr.core.result import Err, Ok
from mpr.release import config as rc
from mpr.release.model import ArtifactRef
from mpr.release.toolchains import firebase
from mpr.release.toolchains.base import (
    StageContext,
    StageResult,
    files_with_suffix,
    gradle_task,
    nothing_to_do,
)

_UNSIGNED_SUFFIX = "-unsigned.apk"


class AndroidToolchain:
    def __init__(self, *, flavors: tuple[str, ...] = rc.APK_FLAVORS) -> None:
        self._flavors = flavors

    def build(self, ctx: StageContext) -> StageResult:
        result = gradle_task(ctx, "assembleRelease")
        if isinstance(result, Err):
            return result
        return nothing_to_do()

    def sign(self, ctx: StageContext) -> StageResult:
        unsigned = [
            apk
            for flavor in self._flavors
            for apk in files_with_suffix(
                ctx.module_path(rc.apk_dir(ctx.job.package_name, flavor)), _UNSIGNED_SUFFIX
            )
        ]
        if not unsigned:
            return ctx.fail(
                "no unsigned APKs found",
                hint=str(ctx.module_path(rc.apk_dir(ctx.job.package_name, "<flavor>"))),
            )

        keystore = ctx.secret_file(
            "original_keystore_file", "release.keystore", base64_encoded=True
        )
        if isinstance(keystore, Err):
            return keystore

        env = {
            "MPR_KS_PASS": ctx.secrets["original_keystore_file_password"],
            "MPR_KEY_PASS": ctx.secrets["original_keystore_alias_password"],
        }
        for apk in unsigned:
            signed = apk.with_name(apk.name[: -len(_UNSIGNED_SUFFIX)] + ".apk")
            result = ctx.run(
                [
                    "apksigner",
                    "sign",
                    "--ks",
                    str(keystore.value),
                    "--ks-pass",
                    "env:MPR_KS_PASS",
                    "--ks-key-alias",
                    ctx.secrets["original_keystore_alias"],
                    "--key-pass",
                    "env:MPR_KEY_PASS",
                    "--out",
                    str(signed),
                    str(apk),
                ],
                extra_env=env,
            )
            if isinstance(result, Err):
                return result
        return nothing_to_do()

    def package(self, ctx: StageContext) -> StageResult:
        artifacts: list[ArtifactRef] = []
        for flavor in self._flavors:
            apk_dir = ctx.module_path(rc.apk_dir(ctx.job.package_name, flavor))
            for apk in files_with_suffix(apk_dir, ".apk"):
                if apk.name.endswith(_UNSIGNED_SUFFIX):
                    continue
                artifacts.append(ctx.artifact("apk", apk))
        if not artifacts:
            return ctx.fail("no signed APKs to package")

        app_id = ctx.job.option("firebase_app_id") or firebase.app_id_from_google_services(
            ctx.secrets[rc.GOOGLE_SERVICES_SECRET]
        )
        if app_id is None:
            return ctx.fail(
                "cannot determine the Firebase app id",
                hint="Set platforms.android.firebase_app_id or fix google_services.",
            )

        preferred = [a for a in artifacts if rc.PLAY_STORE_FLAVOR in a.storage_path.parts]
        target = (preferred or artifacts)[0]
        distributed = firebase.distribute(ctx, target.storage_path, app_id=app_id)
        if isinstance(distributed, Err):
            return distributed
        return Ok(tuple(artifacts))

    def publish(self, ctx: StageContext) -> StageResult:
        keystore = ctx.secret_file("upload_keystore_file", "upload.keystore", base64_encoded=True)
        if isinstance(keystore, Err):
            return keystore

        # Gradle reads ORG_GRADLE_PROJECT_<name> as -P<name>; keeps passwords out of argv.
        signing = {
            "store.file": str(keystore.value),
            "store.password": ctx.secrets["upload_keystore_file_password"],
            "key.alias": ctx.secrets["upload_keystore_alias"],
            "key.password": ctx.secrets["upload_keystore_alias_password"],
        }
        env = {f"ORG_GRADLE_PROJECT_android.injected.signing.{k}": v for k, v in signing.items()}

        flavor = rc.PLAY_STORE_FLAVOR
        bundle = gradle_task(ctx, f"bundle{flavor.capitalize()}Release", extra_env=env)
        if isinstance(bundle, Err):
            return bundle

        aabs = files_with_suffix(ctx.module_path(rc.aab_dir(ctx.job.package_name, flavor)), ".aab")
        if not aabs:
            return ctx.fail("no app bundle produced", hint=f"{flavor}Release")

        application_id = ctx.job.option("application_id")
        if application_id is None:
            application_id = firebase.package_name_from_google_services(
                ctx.secrets[rc.GOOGLE_SERVICES_SECRET]
            )
        if application_id is None:
            return ctx.fail(
                "cannot determine the application id",
                hint="Set platforms.android.application_id or fix google_services.",
            )

        json_key = ctx.secret_file(rc.PLAYSTORE_CREDS_SECRET, "playstore-creds.json")
        if isinstance(json_key, Err):
            return json_key

        track = "beta" if ctx.release_type == "beta" else "internal"
        result = ctx.run(
            [
                "fastlane",
                "supply",
                "--aab",
                str(aabs[0]),
                "--track",
                track,
                "--json_key",
                str(json_key.value),
                "--package_name",
                application_id,
                "--skip_upload_metadata",
                "--skip_upload_images",
                "--skip_upload_screenshots",
            ]
        )
        if isinstance(result, Err):
            return result
        ctx.console.print(f"uploaded {aabs[0].name} to the Play Store {track} track")
        return nothing_to_do()
