from __future__ import annotations

from pathlib import Path
from typing import Protocol

from mpr.core.result import Err, Ok, Result
from mpr.output.console import ConsoleProtocol
from mpr.release import gh
from mpr.release.assembler import ReleaseFiles
from mpr.release.contracts import PublishedRelease
from mpr.release.errors import ReleaseError
from mpr.release.model import ReleaseManifest


class ReleasePublisher(Protocol):
    def publish(
        self, manifest: ReleaseManifest, files: ReleaseFiles, *, target_branch: str
    ) -> Result[PublishedRelease, ReleaseError]: ...


def _assets(manifest: ReleaseManifest, files: ReleaseFiles) -> list[Path]:
    return [a.storage_path for a in manifest.artifacts] + [files.manifest]


class GhReleasePublisher:
    """Creates a GitHub pre-release tagged with the version name."""

    def __init__(
        self,
        *,
        project_root: Path,
        repo: str = "{owner}/{repo}",
        token: str | None = None,
    ) -> None:
        self._root = project_root
        self._repo = repo
        self._env = {"GH_TOKEN": token} if token else None

    def publish(
        self, manifest: ReleaseManifest, files: ReleaseFiles, *, target_branch: str
    ) -> Result[PublishedRelease, ReleaseError]:
        if not manifest.prerelease:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message="only pre-releases are published; promotion is done on GitHub",
                )
            )

        available = gh.ensure_gh_available()
        if isinstance(available, Err):
            return available

        assets = _assets(manifest, files)
        url = gh.create_release(
            project_root=self._root,
            tag=manifest.version,
            notes_file=files.changelog,
            target=target_branch,
            files=assets,
            repo=self._repo,
            env=self._env,
        )
        if isinstance(url, Err):
            return url
        return Ok(
            PublishedRelease(tag=manifest.version, url=url.value or None, files=tuple(assets))
        )


class DryRunPublisher:
    """Records what would be published without touching the release host."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console
        self.published: list[PublishedRelease] = []

    def publish(
        self, manifest: ReleaseManifest, files: ReleaseFiles, *, target_branch: str
    ) -> Result[PublishedRelease, ReleaseError]:
        assets = _assets(manifest, files)
        self._console.info(
            f"dry run: would create pre-release {manifest.version} on {target_branch} "
            f"with {len(assets)} file(s)"
        )
        release = PublishedRelease(tag=manifest.version, url=None, files=tuple(assets))
        self.published.append(release)
        return Ok(release)
