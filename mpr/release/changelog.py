from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from mpr.core.result import Err, Ok, Result
from mpr.git import Repository
from mpr.release import gh
from mpr.release.errors import ReleaseNotesGenerationError
from mpr.release.versioning import Version


def sanitize_changelog(text: str) -> str:
    """Backticks and double quotes become single quotes (safe to embed in store metadata)."""
    return text.replace("`", "'").replace('"', "'")


def render_subjects(subjects: tuple[str, ...]) -> str:
    if not subjects:
        return ""
    return "\n".join(f"* {s}" for s in subjects) + "\n"


class ChangelogSource(Protocol):
    def generate(
        self, version: Version, target_branch: str
    ) -> Result[str, ReleaseNotesGenerationError]: ...


class GitHubReleaseNotes:
    """Notes generated by GitHub between the latest release and the target branch."""

    def __init__(
        self,
        *,
        project_root: Path,
        repo: str = "{owner}/{repo}",
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._root = project_root
        self._repo = repo
        self._env = env

    def generate(
        self, version: Version, target_branch: str
    ) -> Result[str, ReleaseNotesGenerationError]:
        previous = gh.latest_release_tag(project_root=self._root, repo=self._repo, env=self._env)
        if isinstance(previous, Err):
            return Err(
                ReleaseNotesGenerationError(
                    message=previous.error.message, hint=previous.error.hint
                )
            )

        notes = gh.generate_release_notes(
            project_root=self._root,
            repo=self._repo,
            tag=version.name,
            target=target_branch,
            previous_tag=previous.value,
            env=self._env,
        )
        if isinstance(notes, Err):
            return Err(
                ReleaseNotesGenerationError(message=notes.error.message, hint=notes.error.hint)
            )
        return Ok(sanitize_changelog(notes.value))


class GitLogChangelog:
    """`* <subject>` lines since the previous tag (whole history without one)."""

    def __init__(self, *, project_root: Path) -> None:
        self._repo = Repository(project_root)

    def generate(
        self, version: Version, target_branch: str
    ) -> Result[str, ReleaseNotesGenerationError]:
        previous = self._repo.latest_tag()
        rev_range = f"{previous}..HEAD" if previous else "HEAD"
        subjects = self._repo.log_subjects(rev_range)
        if isinstance(subjects, Err):
            return Err(
                ReleaseNotesGenerationError(
                    message=f"git log failed for {rev_range}", hint=subjects.error.message
                )
            )
        return Ok(sanitize_changelog(render_subjects(subjects.value)))


def beta_changelog(project_root: Path) -> str:
    """Subject of the head commit only; empty for a repository with a single commit."""
    subjects = Repository(project_root).log_subjects("HEAD^..HEAD")
    match subjects:
        case Ok(lines):
            return render_subjects(lines)
        case Err(_):
            return ""
