"""Platform job descriptors.

Turns trigger inputs plus config into the immutable `PlatformJob` list the
orchestrator runs. Enablement follows the reusable workflow: Android, every
desktop target and Web always build; iOS only with `build_ios`; store
publishing only with the matching `publish_*` flag.
"""

from __future__ import annotations

import shlex

from mpr.core.config import Config
from mpr.core.result import Err, Ok, Result
from mpr.release import config as rc
from mpr.release.contracts import ReleaseRequest
from mpr.release.errors import ReleaseError
from mpr.release.model import PlatformJob


def _options(**values: str | None) -> tuple[tuple[str, str], ...]:
    return tuple(sorted((k, v) for k, v in values.items() if v is not None))


def _selected(request: ReleaseRequest, platform_id: str) -> bool:
    return request.only is None or platform_id in request.only


def android_secrets(*, publish: bool) -> frozenset[str]:
    keys = {
        *rc.ANDROID_RELEASE_KEYSTORE_SECRETS,
        rc.GOOGLE_SERVICES_SECRET,
        rc.FIREBASE_CREDS_SECRET,
    }
    if publish:
        keys.update(rc.ANDROID_UPLOAD_KEYSTORE_SECRETS)
        keys.add(rc.PLAYSTORE_CREDS_SECRET)
    return frozenset(keys)


def ios_secrets() -> frozenset[str]:
    return frozenset({rc.FIREBASE_CREDS_SECRET})


def desktop_secrets(target: str) -> frozenset[str]:
    keys = set(rc.desktop_signing_secrets(target))
    if target == "macos":
        keys.update(rc.NOTARIZATION_SECRETS)
    return frozenset(keys)


def build_jobs(
    request: ReleaseRequest, config: Config
) -> Result[tuple[PlatformJob, ...], ReleaseError]:
    """Build one PlatformJob per known platform, in reporting order.

    Jobs filtered out by `request.only` are kept (disabled) so they are
    reported as Skipped rather than silently missing.
    """
    if request.publish_ios and not request.build_ios:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message="publish_ios requires build_ios",
                hint="Pass --build-ios together with --publish-ios.",
            )
        )

    if request.only is not None:
        unknown = sorted(request.only - set(rc.PLATFORM_ORDER))
        if unknown:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"unknown platform(s): {', '.join(unknown)}",
                    hint=f"Known: {', '.join(rc.PLATFORM_ORDER)}",
                )
            )

    jobs: list[PlatformJob] = []

    android_on = _selected(request, rc.ANDROID)
    android_publish = android_on and request.publish_android
    jobs.append(
        PlatformJob(
            platform_id=rc.ANDROID,
            enabled=android_on,
            publish_enabled=android_publish,
            package_name=request.android_package_name,
            required_secrets=android_secrets(publish=android_publish),
            options=_options(
                firebase_app_id=config.android.firebase_app_id,
                application_id=config.android.application_id,
            ),
        )
    )

    ios_on = request.build_ios and _selected(request, rc.IOS)
    jobs.append(
        PlatformJob(
            platform_id=rc.IOS,
            enabled=ios_on,
            publish_enabled=ios_on and request.publish_ios,
            package_name=request.ios_package_name,
            required_secrets=ios_secrets(),
            options=_options(
                firebase_app_id=config.ios.firebase_app_id,
                scheme=config.ios.scheme,
                workspace=config.ios.workspace,
            ),
        )
    )

    publish_command = (
        shlex.join(config.desktop.publish_command) if config.desktop.publish_command else None
    )
    for target, platform_id in rc.DESKTOP_TARGETS.items():
        on = target in config.desktop.targets and _selected(request, platform_id)
        jobs.append(
            PlatformJob(
                platform_id=platform_id,
                enabled=on,
                publish_enabled=on and publish_command is not None,
                package_name=request.desktop_package_name,
                required_secrets=desktop_secrets(target),
                options=_options(target=target, publish_command=publish_command),
            )
        )

    web_on = _selected(request, rc.WEB)
    jobs.append(
        PlatformJob(
            platform_id=rc.WEB,
            enabled=web_on,
            publish_enabled=web_on and config.web.publish,
            package_name=request.web_package_name,
            options=_options(dist_dir=config.web.dist_dir),
        )
    )

    return Ok(tuple(jobs))
