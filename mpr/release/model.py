from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from mpr.release.errors import JobError
from mpr.release.states import JobStatus, Stage

ReleaseType = Literal["internal", "beta"]

REDACTED = "***"


@dataclass(frozen=True, slots=True)
class PlatformJob:
    """Static description of one platform's release job.

    `options` holds platform-specific settings (Firebase app id, Xcode scheme,
    publish command...) as sorted key/value pairs so the job stays hashable.
    """

    platform_id: str
    enabled: bool
    publish_enabled: bool
    package_name: str
    required_secrets: frozenset[str] = frozenset()
    options: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        if self.publish_enabled and not self.enabled:
            raise ValueError(f"{self.platform_id}: publish_enabled requires enabled")

    def option(self, key: str) -> str | None:
        for k, v in self.options:
            if k == key:
                return v
        return None


class SecretBundle(Mapping[str, str]):
    """Credentials resolved for exactly one job.

    Values never show up in repr() and `redact()` masks them in free text
    (collaborator stderr, echoed command lines).
    """

    __slots__ = ("_platform_id", "_values")

    def __init__(self, platform_id: str, values: Mapping[str, str]) -> None:
        self._platform_id = platform_id
        self._values = dict(values)

    @property
    def platform_id(self) -> str:
        return self._platform_id

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        keys = ", ".join(sorted(self._values))
        return f"SecretBundle({self._platform_id!r}, keys=[{keys}])"

    def redact(self, text: str) -> str:
        # Longest first so a secret containing another secret is fully masked.
        for value in sorted(self._values.values(), key=len, reverse=True):
            if value:
                text = text.replace(value, REDACTED)
        return text


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    platform_id: str
    artifact_kind: str
    storage_path: Path
    # Only for directory artifacts: name of the archive they are compressed into.
    archive_name: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.artifact_kind == "directory"

    def sort_key(self) -> tuple[str, str, str]:
        return (self.platform_id, self.artifact_kind, self.storage_path.as_posix())


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    stage: Stage
    cause: JobError

    @property
    def kind(self) -> str:
        return type(self.cause).__name__

    @property
    def message(self) -> str:
        return self.cause.pretty()


@dataclass(frozen=True, slots=True)
class JobResult:
    platform_id: str
    status: JobStatus
    artifacts: tuple[ArtifactRef, ...] = ()
    error: ErrorInfo | None = None
    stages: tuple[Stage, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status == JobStatus.SUCCEEDED


def _no_failures() -> tuple[tuple[str, ErrorInfo], ...]:
    return ()


@dataclass(frozen=True, slots=True)
class ReleaseManifest:
    version: str
    version_code: int
    commit_ref: str
    changelog: str
    artifacts: tuple[ArtifactRef, ...]
    succeeded: tuple[str, ...]
    failures: tuple[tuple[str, ErrorInfo], ...] = field(default_factory=_no_failures)
    # Always a pre-release: promotion to stable is an explicit external action.
    prerelease: bool = True

    def to_dict(self, checksums: Mapping[Path, str] | None = None) -> dict[str, object]:
        checksums = checksums or {}
        return {
            "version": self.version,
            "version_code": self.version_code,
            "commit_ref": self.commit_ref,
            "prerelease": self.prerelease,
            "succeeded": list(self.succeeded),
            "failures": [
                {
                    "platform": platform_id,
                    "stage": str(info.stage),
                    "kind": info.kind,
                    "message": info.message,
                }
                for platform_id, info in self.failures
            ],
            "artifacts": [
                {
                    "platform": a.platform_id,
                    "kind": a.artifact_kind,
                    "path": a.storage_path.as_posix(),
                    "sha256": checksums.get(a.storage_path),
                }
                for a in self.artifacts
            ],
        }
