"""Error presentation utilities.

Centralized rendering of a release run and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mpr.core.errors import ErrorCode
from mpr.output.console import Style
from mpr.release.contracts import RunOutcome
from mpr.release.errors import AssembleError, NoArtifactsError, ReleaseError
from mpr.release.states import JobStatus

if TYPE_CHECKING:
    from mpr.output.console import ConsoleProtocol

__all__ = ["print_release_error", "print_run_outcome", "release_error_exit_code", "run_exit_code"]


def print_release_error(error: AssembleError, console: ConsoleProtocol) -> None:
    """Print a run-level error with its hint."""
    match error:
        case NoArtifactsError():
            console.error(error.message)
            if error.hint:
                console.print(f"hint: {error.hint}", Style.DIM)
        case ReleaseError(message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)


def print_run_outcome(outcome: RunOutcome, console: ConsoleProtocol) -> None:
    console.header("Summary")
    for r in outcome.results:
        match r.status:
            case JobStatus.SUCCEEDED:
                console.print(f"  {r.platform_id}: succeeded ({len(r.artifacts)})", Style.SUCCESS)
            case JobStatus.SKIPPED:
                console.print(f"  {r.platform_id}: skipped", Style.DIM)
            case JobStatus.NOT_IMPLEMENTED:
                stage = r.error.stage if r.error else "?"
                console.print(f"  {r.platform_id}: not implemented ({stage})", Style.WARNING)
            case JobStatus.FAILED:
                detail = f"{r.error.stage}: {r.error.message}" if r.error else "failed"
                console.print(f"  {r.platform_id}: failed ({detail})", Style.ERROR)

    if outcome.error is not None:
        print_release_error(outcome.error, console)
        return

    if outcome.published is not None:
        where = outcome.published.url or "(dry run)"
        console.success(f"pre-release {outcome.published.tag}: {where}")


def release_error_exit_code(error: AssembleError) -> int:
    match error:
        case NoArtifactsError():
            return int(ErrorCode.RELEASE_ERROR)
        case ReleaseError(kind="invalid_input"):
            return int(ErrorCode.USER_ERROR)
        case ReleaseError(kind="gh_missing"):
            return int(ErrorCode.ENV_ERROR)
        case ReleaseError(kind="archive_failed" | "write_failed"):
            return int(ErrorCode.IO_ERROR)
        case ReleaseError():
            return int(ErrorCode.RELEASE_ERROR)


def run_exit_code(outcome: RunOutcome) -> int:
    if outcome.success:
        return int(ErrorCode.OK)
    if outcome.error is not None:
        return release_error_exit_code(outcome.error)
    return int(ErrorCode.RELEASE_ERROR)
