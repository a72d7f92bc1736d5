"""Exit codes for the `mpr` command line.

The numeric values are part of the CLI contract (CI jobs branch on them) and
must remain stable:
- 0: Success (at least one platform succeeded and the release was published)
- 1: User error (bad trigger inputs, invalid config)
- 2: Environment error (missing `gh`, not a git repository)
- 3: Release error (no platform succeeded, publication failed)
- 5: I/O error (manifest or changelog could not be written)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_ERROR = 3
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
