"""Desktop installers built with Compose Desktop packaging tasks.

One job per target OS. Installers land under
`compose/binaries/main-release/<format>/` and are signed in place:

- linux:   detached armored gpg signature (`.asc`), verified against the
           public certificate
- macos:   codesign from a throwaway keychain, then notarization + stapling
- windows: Authenticode with osslsigncode (key + certificate PEM)
"""

from __future__ import annotations

import os
import secrets
import shlex
from pathlib import Path

from mpr.core.result import Err, Ok, Result
from mpr.release import config as rc
from mpr.release.errors import StageNotImplemented, StageProblem
from mpr.release.model import ArtifactRef
from mpr.release.states import Stage
from mpr.release.toolchains.base import (
    StageContext,
    StageResult,
    files_with_suffix,
    gradle_task,
    nothing_to_do,
)

_NOTARY_PROFILE = "mpr-notary"


class DesktopToolchain:
    def __init__(self, target: str) -> None:
        if target not in rc.DESKTOP_FORMATS:
            raise ValueError(f"unknown desktop target: {target}")
        self.target = target

    def _installers(self, ctx: StageContext) -> list[tuple[str, Path]]:
        out: list[tuple[str, Path]] = []
        for fmt in rc.DESKTOP_FORMATS[self.target]:
            directory = ctx.module_path(rc.desktop_binaries_dir(ctx.job.package_name, fmt))
            out.extend((fmt, p) for p in files_with_suffix(directory, f".{fmt}"))
        return out

    def build(self, ctx: StageContext) -> StageResult:
        for fmt in rc.DESKTOP_FORMATS[self.target]:
            result = gradle_task(ctx, rc.desktop_package_task(fmt))
            if isinstance(result, Err):
                return result
        return nothing_to_do()

    def sign(self, ctx: StageContext) -> StageResult:
        installers = [path for _, path in self._installers(ctx)]
        if not installers:
            return ctx.fail(f"no {self.target} installers found to sign")

        match self.target:
            case "linux":
                signed = _sign_gpg(ctx, installers)
            case "macos":
                signed = _sign_macos(ctx, installers)
            case _:
                signed = _sign_authenticode(ctx, installers)
        if isinstance(signed, Err):
            return signed
        return nothing_to_do()

    def package(self, ctx: StageContext) -> StageResult:
        artifacts: list[ArtifactRef] = []
        for fmt, path in self._installers(ctx):
            artifacts.append(ctx.artifact(fmt, path))
            signature = path.with_name(path.name + ".asc")
            if signature.is_file():
                artifacts.append(ctx.artifact("asc", signature))
        if not artifacts:
            return ctx.fail(f"no {self.target} installers to package")
        return Ok(tuple(artifacts))

    def publish(self, ctx: StageContext) -> StageResult:
        command = ctx.job.option("publish_command")
        if command is None:
            return Err(
                StageNotImplemented(stage=Stage.PUBLISHING, feature="desktop store publishing")
            )
        files = os.pathsep.join(str(a.storage_path) for a in ctx.artifacts)
        result = ctx.run(
            shlex.split(command),
            extra_env={"MPR_ARTIFACTS": files, "MPR_DESKTOP_TARGET": self.target},
        )
        if isinstance(result, Err):
            return result
        return nothing_to_do()


def _sign_gpg(ctx: StageContext, installers: list[Path]) -> Result[None, StageProblem]:
    key = ctx.secret_file("linux_signing_key", "signing-key.asc")
    if isinstance(key, Err):
        return key
    passphrase = ctx.secret_file("linux_signing_password", "signing-passphrase")
    if isinstance(passphrase, Err):
        return passphrase
    certificate = ctx.secret_file("linux_signing_certificate", "signing-cert.asc")
    if isinstance(certificate, Err):
        return certificate

    home = ctx.secrets_dir / "gnupg"
    home.mkdir(mode=0o700, exist_ok=True)
    gpg = ["gpg", "--homedir", str(home), "--batch", "--yes"]
    unlock = ["--pinentry-mode", "loopback", "--passphrase-file", str(passphrase.value)]

    for keyfile in (key.value, certificate.value):
        imported = ctx.run([*gpg, *unlock, "--import", str(keyfile)])
        if isinstance(imported, Err):
            return imported

    for installer in installers:
        signature = installer.with_name(installer.name + ".asc")
        signed = ctx.run(
            [
                *gpg,
                *unlock,
                "--armor",
                "--output",
                str(signature),
                "--detach-sign",
                str(installer),
            ]
        )
        if isinstance(signed, Err):
            return signed
        verified = ctx.run([*gpg, "--verify", str(signature), str(installer)])
        if isinstance(verified, Err):
            return verified
    return Ok(None)


def _sign_macos(ctx: StageContext, installers: list[Path]) -> Result[None, StageProblem]:
    certificate = ctx.secret_file(
        "macos_signing_certificate", "signing.p12", base64_encoded=True
    )
    if isinstance(certificate, Err):
        return certificate

    # `security import` and `notarytool store-credentials` only take these passwords
    # as arguments; each is passed once, into a keychain deleted with the job.
    keychain = ctx.secrets_dir / "signing.keychain-db"
    keychain_password = secrets.token_hex(16)
    created = ctx.run(["security", "create-keychain", "-p", keychain_password, str(keychain)])
    if isinstance(created, Err):
        return created

    try:
        setup = (
            ["security", "unlock-keychain", "-p", keychain_password, str(keychain)],
            [
                "security",
                "import",
                str(certificate.value),
                "-k",
                str(keychain),
                "-P",
                ctx.secrets["macos_signing_password"],
                "-T",
                "/usr/bin/codesign",
            ],
            [
                "xcrun",
                "notarytool",
                "store-credentials",
                _NOTARY_PROFILE,
                "--apple-id",
                ctx.secrets["notarization_apple_id"],
                "--team-id",
                ctx.secrets["notarization_team_id"],
                "--password",
                ctx.secrets["notarization_password"],
                "--keychain",
                str(keychain),
            ],
        )
        for cmd in setup:
            result = ctx.run(cmd)
            if isinstance(result, Err):
                return result

        for installer in installers:
            steps = (
                [
                    "codesign",
                    "--force",
                    "--timestamp",
                    "--options",
                    "runtime",
                    "--keychain",
                    str(keychain),
                    "--sign",
                    ctx.secrets["macos_signing_key"],
                    str(installer),
                ],
                [
                    "xcrun",
                    "notarytool",
                    "submit",
                    str(installer),
                    "--keychain-profile",
                    _NOTARY_PROFILE,
                    "--keychain",
                    str(keychain),
                    "--wait",
                ],
                ["xcrun", "stapler", "staple", str(installer)],
            )
            for cmd in steps:
                result = ctx.run(cmd)
                if isinstance(result, Err):
                    return result
        return Ok(None)
    finally:
        ctx.run(["security", "delete-keychain", str(keychain)])


def _sign_authenticode(ctx: StageContext, installers: list[Path]) -> Result[None, StageProblem]:
    key = ctx.secret_file("windows_signing_key", "signing-key.pem")
    if isinstance(key, Err):
        return key
    certificate = ctx.secret_file("windows_signing_certificate", "signing-cert.pem")
    if isinstance(certificate, Err):
        return certificate
    passphrase = ctx.secret_file("windows_signing_password", "signing-passphrase")
    if isinstance(passphrase, Err):
        return passphrase

    for installer in installers:
        signed_path = installer.with_name(f"signed-{installer.name}")
        result = ctx.run(
            [
                "osslsigncode",
                "sign",
                "-certs",
                str(certificate.value),
                "-key",
                str(key.value),
                "-readpass",
                str(passphrase.value),
                "-n",
                ctx.job.package_name,
                "-h",
                "sha256",
                "-in",
                str(installer),
                "-out",
                str(signed_path),
            ]
        )
        if isinstance(result, Err):
            return result
        try:
            os.replace(signed_path, installer)
        except OSError as e:
            return ctx.fail(f"failed to replace {installer.name} with its signed copy: {e}")
    return Ok(None)
