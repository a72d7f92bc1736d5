"""Git repository abstraction.

Read-only queries the release needs: commit and tag counts for the version
code, the head commit for the manifest and commit subjects for the fallback
changelog.

Usage:
    repo = Repository(Path("."))
    match repo.commit_count():
        case Ok(count):
            print(f"{count} commits")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mpr.core.result import Err, Ok, Result
from mpr.platform.process import ProcessError
from mpr.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0

__all__ = ["GitError", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """A git checkout. All methods that can fail return Result types."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a valid git repository (worktrees use a .git file)."""
        return (self.path / ".git").exists()

    def head_sha(self) -> Result[str, GitError]:
        return self._query(["rev-parse", "HEAD"], "rev-parse HEAD")

    def commit_count(self, rev: str = "HEAD") -> Result[int, GitError]:
        """Number of commits reachable from `rev` (`git rev-list --count`)."""
        result = self._query(["rev-list", "--count", rev], "rev-list --count")
        if isinstance(result, Err):
            return result
        try:
            return Ok(int(result.value))
        except ValueError:
            return Err(
                GitError(
                    command="rev-list --count",
                    message=f"unexpected output: {result.value!r}",
                )
            )

    def tags(self) -> Result[tuple[str, ...], GitError]:
        result = self._query(["tag", "--list"], "tag --list")
        if isinstance(result, Err):
            return result
        return Ok(tuple(line.strip() for line in result.value.splitlines() if line.strip()))

    def latest_tag(self, rev: str = "HEAD") -> str | None:
        """Closest tag reachable from `rev`, None if there is none."""
        result = self._query(["describe", "--tags", "--abbrev=0", rev], "describe")
        match result:
            case Ok(tag):
                return tag or None
            case Err(_):
                return None

    def log_subjects(self, rev_range: str) -> Result[tuple[str, ...], GitError]:
        """Commit subjects in `rev_range`, newest first."""
        result = self._run(["log", "--format=%s", rev_range])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="log",
                        message=e.stderr.strip() or "git log failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(tuple(s for s in stdout.splitlines() if s.strip()))

    def _query(self, args: list[str], command: str) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=command,
                        message=e.stderr.strip() or f"git {command} failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        return run_process(
            ["git", "-C", str(self.path), *args], cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS
        )
