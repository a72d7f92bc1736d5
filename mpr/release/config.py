from __future__ import annotations

from pathlib import Path

ANDROID = "android"
IOS = "ios"
DESKTOP_LINUX = "desktop-linux"
DESKTOP_MACOS = "desktop-macos"
DESKTOP_WINDOWS = "desktop-windows"
WEB = "web"

# Reporting order; execution is concurrent.
PLATFORM_ORDER: tuple[str, ...] = (
    ANDROID,
    IOS,
    DESKTOP_LINUX,
    DESKTOP_MACOS,
    DESKTOP_WINDOWS,
    WEB,
)

DESKTOP_TARGETS: dict[str, str] = {
    "linux": DESKTOP_LINUX,
    "macos": DESKTOP_MACOS,
    "windows": DESKTOP_WINDOWS,
}

# -----------------------------------------------------------------------------
# Secret keys (names match the reusable workflow's secrets)
# -----------------------------------------------------------------------------

ANDROID_RELEASE_KEYSTORE_SECRETS: tuple[str, ...] = (
    "original_keystore_file",
    "original_keystore_file_password",
    "original_keystore_alias",
    "original_keystore_alias_password",
)
ANDROID_UPLOAD_KEYSTORE_SECRETS: tuple[str, ...] = (
    "upload_keystore_file",
    "upload_keystore_file_password",
    "upload_keystore_alias",
    "upload_keystore_alias_password",
)
GOOGLE_SERVICES_SECRET = "google_services"
FIREBASE_CREDS_SECRET = "firebase_creds"
PLAYSTORE_CREDS_SECRET = "playstore_creds"
GITHUB_TOKEN_SECRET = "token"

NOTARIZATION_SECRETS: tuple[str, ...] = (
    "notarization_apple_id",
    "notarization_password",
    "notarization_team_id",
)


def desktop_signing_secrets(target: str) -> tuple[str, ...]:
    return (
        f"{target}_signing_key",
        f"{target}_signing_password",
        f"{target}_signing_certificate",
    )


# -----------------------------------------------------------------------------
# Artifact layout (relative to the platform module; must stay stable)
# -----------------------------------------------------------------------------

APK_FLAVORS: tuple[str, ...] = ("demo", "prod")
PLAY_STORE_FLAVOR = "prod"

DESKTOP_FORMATS: dict[str, tuple[str, ...]] = {
    "linux": ("deb",),
    "macos": ("dmg",),
    "windows": ("exe", "msi"),
}

WEB_DIST_DIR = "build/dist/js/productionExecutable"

IOS_DEFAULT_SCHEME = "iosApp"


def apk_dir(package: str, flavor: str) -> Path:
    return Path(package) / "build" / "outputs" / "apk" / flavor / "release"


def aab_dir(package: str, flavor: str) -> Path:
    return Path(package) / "build" / "outputs" / "bundle" / f"{flavor}Release"


def desktop_binaries_dir(package: str, fmt: str) -> Path:
    return Path(package) / "build" / "compose" / "binaries" / "main-release" / fmt


def desktop_package_task(fmt: str) -> str:
    return f"packageRelease{fmt.capitalize()}"


# -----------------------------------------------------------------------------
# Release output files
# -----------------------------------------------------------------------------

MANIFEST_FILENAME = "release-manifest.json"
CHANGELOG_FILENAME = "changelogGithub"
BETA_CHANGELOG_FILENAME = "changelogBeta"
WORK_DIR = "work"
