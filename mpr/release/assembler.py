"""Collect successful job outputs into a versioned, pre-release manifest."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from mpr.core.result import Err, Ok, Result
from mpr.output.console import ConsoleProtocol
from mpr.platform.files import atomic_write_text
from mpr.release.changelog import ChangelogSource
from mpr.release.config import BETA_CHANGELOG_FILENAME, CHANGELOG_FILENAME, MANIFEST_FILENAME
from mpr.release.errors import AssembleError, NoArtifactsError, ReleaseError
from mpr.release.model import ArtifactRef, JobResult, ReleaseManifest
from mpr.release.packaging import archive_directory_artifacts, sha256_file
from mpr.release.states import JobStatus
from mpr.release.versioning import VersionPolicy


@dataclass(frozen=True, slots=True)
class ReleaseFiles:
    manifest: Path
    changelog: Path
    beta_changelog: Path


class ReleaseAssembler:
    def __init__(
        self,
        *,
        out_dir: Path,
        target_branch: str,
        commit_ref: str,
        console: ConsoleProtocol,
    ) -> None:
        self._out_dir = out_dir
        self._target_branch = target_branch
        self._commit_ref = commit_ref
        self._console = console

    def assemble(
        self,
        results: Sequence[JobResult],
        version_policy: VersionPolicy,
        changelog_source: ChangelogSource,
    ) -> Result[ReleaseManifest, AssembleError]:
        """Build the manifest from the SUCCEEDED results only.

        Nothing is written and no version is computed when no job succeeded.
        """
        succeeded = [r for r in results if r.succeeded]
        if not succeeded:
            attempted = tuple(r.platform_id for r in results if r.status != JobStatus.SKIPPED)
            return Err(NoArtifactsError(platforms=attempted))

        version = version_policy.resolve()
        if isinstance(version, Err):
            return version

        changelog = changelog_source.generate(version.value, self._target_branch)
        match changelog:
            case Ok(text):
                notes = text
            case Err(e):
                self._console.warning(f"release notes unavailable: {e.pretty()}")
                notes = ""

        # One entry per file, even if two jobs report the same output.
        unique: dict[Path, ArtifactRef] = {}
        for artifact in sorted(
            (a for r in succeeded for a in r.artifacts), key=ArtifactRef.sort_key
        ):
            unique.setdefault(artifact.storage_path, artifact)
        collected = list(unique.values())
        artifacts = archive_directory_artifacts(collected, self._out_dir)
        if isinstance(artifacts, Err):
            return artifacts

        return Ok(
            ReleaseManifest(
                version=version.value.name,
                version_code=version.value.code,
                commit_ref=self._commit_ref,
                changelog=notes,
                artifacts=artifacts.value,
                succeeded=tuple(r.platform_id for r in succeeded),
                failures=tuple(
                    (r.platform_id, r.error) for r in results if r.error is not None
                ),
            )
        )


def write_release_files(
    manifest: ReleaseManifest, *, out_dir: Path, beta_changelog: str
) -> Result[ReleaseFiles, ReleaseError]:
    files = ReleaseFiles(
        manifest=out_dir / MANIFEST_FILENAME,
        changelog=out_dir / CHANGELOG_FILENAME,
        beta_changelog=out_dir / BETA_CHANGELOG_FILENAME,
    )
    try:
        checksums = {a.storage_path: sha256_file(a.storage_path) for a in manifest.artifacts}
        payload = json.dumps(manifest.to_dict(checksums), indent=2) + "\n"
        atomic_write_text(files.manifest, payload)
        atomic_write_text(files.changelog, manifest.changelog)
        atomic_write_text(files.beta_changelog, beta_changelog)
    except OSError as e:
        return Err(
            ReleaseError(kind="write_failed", message=f"failed to write release files: {e}")
        )
    return Ok(files)
