from __future__ import annotations

from enum import StrEnum


class Stage(StrEnum):
    """Job executor states that do real work, in execution order."""

    PENDING = "pending"
    RESOLVING = "resolving"
    BUILDING = "building"
    SIGNING = "signing"
    PACKAGING = "packaging"
    PUBLISHING = "publishing"


class JobStatus(StrEnum):
    """Terminal state of a platform job."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    # A stage the platform does not support yet (App Store publishing).
    NOT_IMPLEMENTED = "not_implemented"
