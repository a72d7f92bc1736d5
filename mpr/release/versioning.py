"""Release version name and monotonic version code.

The version code packs the history size and the channel into one integer:

    code = ((commits + release_tags) << 1) | channel_bit

where `release_tags` excludes beta tags and `channel_bit` is 0 for internal
and 1 for beta. Every new commit or release tag raises the code by at least
2, so an internal and a beta build of the same commit never collide and a
later build always outranks an earlier one on the same channel.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from mpr.core.result import Err, Ok, Result
from mpr.git import Repository
from mpr.output.console import ConsoleProtocol
from mpr.platform.process import run as run_process
from mpr.release.errors import ReleaseError
from mpr.release.model import ReleaseType
from mpr.release.toolchains.base import gradlew

_VERSION_TASK_TIMEOUT_SECONDS = 10 * 60.0


@dataclass(frozen=True, slots=True)
class Version:
    name: str
    code: int


def channel_bit(release_type: ReleaseType) -> int:
    match release_type:
        case "internal":
            return 0
        case "beta":
            return 1


def version_code(commits: int, release_tags: int, release_type: ReleaseType) -> int:
    if commits < 0 or release_tags < 0:
        raise ValueError("commit and tag counts must be >= 0")
    return ((commits + release_tags) << 1) | channel_bit(release_type)


def count_release_tags(tags: Iterable[str]) -> int:
    return sum(1 for tag in tags if "beta" not in tag)


class VersionPolicy(Protocol):
    def resolve(self) -> Result[Version, ReleaseError]: ...


@dataclass(frozen=True, slots=True)
class StaticVersionPolicy:
    version: Version

    def resolve(self) -> Result[Version, ReleaseError]:
        return Ok(self.version)


class GitVersionPolicy:
    """Derive the version from the checkout at `project_root`.

    The name comes from `override` when given, else from the file written by
    the Gradle `version_task`, else it falls back to the version code.
    """

    def __init__(
        self,
        *,
        project_root: Path,
        release_type: ReleaseType,
        console: ConsoleProtocol,
        override: str | None = None,
        version_task: str | None = "versionFile",
        version_file: str = "version.txt",
    ) -> None:
        self._root = project_root
        self._release_type: ReleaseType = release_type
        self._console = console
        self._override = override
        self._version_task = version_task
        self._version_file = version_file

    def resolve(self) -> Result[Version, ReleaseError]:
        code = self._code()
        if isinstance(code, Err):
            return code

        name = self._name()
        return Ok(Version(name=name or str(code.value), code=code.value))

    def _code(self) -> Result[int, ReleaseError]:
        repo = Repository(self._root)
        commits = repo.commit_count()
        if isinstance(commits, Err):
            return Err(
                ReleaseError(
                    kind="version_failed",
                    message="failed to count commits",
                    hint=commits.error.message,
                )
            )
        tags = repo.tags()
        if isinstance(tags, Err):
            return Err(
                ReleaseError(
                    kind="version_failed",
                    message="failed to list tags",
                    hint=tags.error.message,
                )
            )
        return Ok(version_code(commits.value, count_release_tags(tags.value), self._release_type))

    def _name(self) -> str | None:
        if self._override:
            return self._override.strip()

        if self._version_task:
            result = run_process(
                [gradlew(), self._version_task],
                cwd=self._root,
                timeout=_VERSION_TASK_TIMEOUT_SECONDS,
            )
            if isinstance(result, Err):
                self._console.warning(
                    f"{self._version_task} failed; falling back to the version code"
                )
                return None

        path = self._root / self._version_file
        try:
            text = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            self._console.warning(f"cannot read {path}: {e}")
            return None
        return text or None
