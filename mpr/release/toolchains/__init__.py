"""Per-platform collaborators invoked by the job executor."""

from __future__ import annotations

from mpr.release import config as rc
from mpr.release.model import PlatformJob
from mpr.release.toolchains.android import AndroidToolchain
from mpr.release.toolchains.base import StageContext, StageResult, Toolchain
from mpr.release.toolchains.desktop import DesktopToolchain
from mpr.release.toolchains.ios import IosToolchain
from mpr.release.toolchains.web import WebToolchain

__all__ = [
    "AndroidToolchain",
    "DesktopToolchain",
    "IosToolchain",
    "StageContext",
    "StageResult",
    "Toolchain",
    "WebToolchain",
    "default_toolchain",
]


def default_toolchain(job: PlatformJob) -> Toolchain:
    """Toolchain for a job built by `build_jobs`.

    Raises:
        ValueError: For a platform id without a toolchain.
    """
    match job.platform_id:
        case rc.ANDROID:
            return AndroidToolchain()
        case rc.IOS:
            return IosToolchain()
        case rc.DESKTOP_LINUX | rc.DESKTOP_MACOS | rc.DESKTOP_WINDOWS:
            target = job.option("target") or job.platform_id.removeprefix("desktop-")
            return DesktopToolchain(target)
        case rc.WEB:
            return WebToolchain()
        case _:
            raise ValueError(f"no toolchain for platform: {job.platform_id}")
