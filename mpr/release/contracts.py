"""Cross-layer contracts for the release bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mpr.release.errors import AssembleError, ReleaseError
from mpr.release.model import ErrorInfo, JobResult, ReleaseManifest, ReleaseType


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    """Normalized trigger inputs, however the trigger arrived (CLI, CI dispatch)."""

    project_root: Path
    android_package_name: str
    ios_package_name: str
    desktop_package_name: str
    web_package_name: str
    release_type: ReleaseType = "internal"
    target_branch: str = "dev"
    publish_android: bool = False
    build_ios: bool = False
    publish_ios: bool = False
    # Restrict the run to these platform ids; others are Skipped.
    only: frozenset[str] | None = None
    version_override: str | None = None
    # Build everything but do not create the hosted release.
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class PublishedRelease:
    tag: str
    url: str | None
    files: tuple[Path, ...]


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Result of one orchestrated release run."""

    results: tuple[JobResult, ...]
    manifest: ReleaseManifest | None = None
    published: PublishedRelease | None = None
    error: AssembleError | ReleaseError | None = None

    @property
    def success(self) -> bool:
        """At least one platform succeeded AND the manifest was published."""
        return (
            self.error is None
            and self.published is not None
            and any(r.succeeded for r in self.results)
        )

    @property
    def failures(self) -> tuple[tuple[str, ErrorInfo], ...]:
        return tuple((r.platform_id, r.error) for r in self.results if r.error is not None)
