"""Error payloads for the release bounded context.

Job-level errors end up inside a `Failed` (or `NotImplemented`) JobResult and
never abort sibling jobs. Run-level errors decide the outcome of the whole
release.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from mpr.release.states import Stage


@dataclass(frozen=True, slots=True)
class MissingCredentialError:
    platform_id: str
    missing: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"missing credentials for {self.platform_id}: {', '.join(self.missing)}"

    def pretty(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class StageFailure:
    stage: Stage
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


@dataclass(frozen=True, slots=True)
class StageTimeout:
    stage: Stage
    timeout_seconds: float

    @property
    def message(self) -> str:
        return f"{self.stage} timed out after {self.timeout_seconds:g}s"

    def pretty(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class StageNotImplemented:
    stage: Stage
    feature: str

    @property
    def message(self) -> str:
        return f"{self.feature} is not implemented yet"

    def pretty(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class Cancelled:
    stage: Stage

    @property
    def message(self) -> str:
        return f"cancelled before {self.stage}"

    def pretty(self) -> str:
        return self.message


StageProblem = StageFailure | StageTimeout | StageNotImplemented

JobError = MissingCredentialError | StageFailure | StageTimeout | StageNotImplemented | Cancelled


@dataclass(frozen=True, slots=True)
class NoArtifactsError:
    """No platform job succeeded, so there is nothing to release."""

    platforms: tuple[str, ...]

    @property
    def message(self) -> str:
        if not self.platforms:
            return "no platform succeeded: no jobs were dispatched"
        return f"no platform succeeded ({', '.join(self.platforms)})"

    @property
    def hint(self) -> str | None:
        return "Check the per-platform errors above."

    def pretty(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class ReleaseNotesGenerationError:
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Run-level failure after the jobs finished (versioning, archiving, publishing)."""

    kind: Literal[
        "invalid_input",
        "gh_missing",
        "version_failed",
        "archive_failed",
        "write_failed",
        "publish_failed",
        "cancelled",
    ]
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


AssembleError = NoArtifactsError | ReleaseError
