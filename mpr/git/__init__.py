"""Git operations module.

Usage:
    from mpr.git import Repository

    repo = Repository(Path("."))
    count = repo.commit_count()
"""

from mpr.git.repository import GitError, Repository

__all__ = ["GitError", "Repository"]
