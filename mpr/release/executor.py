"""Job executor: one platform's pipeline as an isolated unit of work.

States:
    Pending → Resolving → Building → Signing → Packaging → Publishing
    terminal: Succeeded | Failed | Skipped | NotImplemented

Every failure (missing credential, collaborator exit code, timeout,
cancellation, even an unexpected exception in a toolchain) is turned into a
terminal JobResult here. Nothing escapes to the orchestrator, so one
platform can never abort another.
"""

from __future__ import annotations

import shutil
import tempfile
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path

from mpr.core.config import StageTimeouts
from mpr.core.result import Err, Ok
from mpr.output.console import ConsoleProtocol, JobConsole, Style
from mpr.release.config import WORK_DIR
from mpr.release.credentials import SecretStore, resolve
from mpr.release.errors import (
    Cancelled,
    JobError,
    StageFailure,
    StageNotImplemented,
    StageProblem,
    StageTimeout,
)
from mpr.release.model import (
    ArtifactRef,
    ErrorInfo,
    JobResult,
    PlatformJob,
    ReleaseType,
    SecretBundle,
)
from mpr.release.states import JobStatus, Stage
from mpr.release.toolchains import StageContext, StageResult, Toolchain, default_toolchain

ToolchainFactory = Callable[[PlatformJob], Toolchain]
StageStep = Callable[[StageContext], StageResult]


class CancellationToken:
    """Shared flag checked by executors between stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


def _steps(job: PlatformJob, toolchain: Toolchain) -> list[tuple[Stage, StageStep]]:
    steps: list[tuple[Stage, StageStep]] = [
        (Stage.BUILDING, toolchain.build),
        (Stage.SIGNING, toolchain.sign),
        (Stage.PACKAGING, toolchain.package),
    ]
    if job.publish_enabled:
        steps.append((Stage.PUBLISHING, toolchain.publish))
    return steps


class JobExecutor:
    def __init__(
        self,
        *,
        secret_store: SecretStore,
        project_root: Path,
        out_dir: Path,
        console: ConsoleProtocol,
        release_type: ReleaseType = "internal",
        timeouts: StageTimeouts | None = None,
        toolchain_for: ToolchainFactory = default_toolchain,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self._store = secret_store
        self._project_root = project_root
        self._out_dir = out_dir
        self._console = console
        self._release_type: ReleaseType = release_type
        self._timeouts = timeouts or StageTimeouts()
        self._toolchain_for = toolchain_for
        self.cancel_token = cancel_token or CancellationToken()

    def execute(self, job: PlatformJob) -> JobResult:
        console = JobConsole(self._console, job.platform_id)
        if not job.enabled:
            console.print("skipped (disabled)", Style.DIM)
            return JobResult(platform_id=job.platform_id, status=JobStatus.SKIPPED)

        visited: list[Stage] = []
        if self.cancel_token.is_cancelled:
            return self._failed(job, visited, Cancelled(stage=Stage.RESOLVING), console)

        visited.append(Stage.RESOLVING)
        bundle = resolve(job, self._store)
        if isinstance(bundle, Err):
            return self._failed(job, visited, bundle.error, console)
        secrets = bundle.value
        console = JobConsole(self._console, job.platform_id, secrets.redact)

        try:
            toolchain = self._toolchain_for(job)
        except ValueError as e:
            return self._failed(
                job, visited, StageFailure(stage=Stage.RESOLVING, message=str(e)), console
            )

        work_dir = self._out_dir / WORK_DIR / job.platform_id
        try:
            work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return self._failed(
                job,
                visited,
                StageFailure(stage=Stage.BUILDING, message=f"cannot create work dir: {e}"),
                console,
            )

        artifacts: list[ArtifactRef] = []
        secrets_dir = Path(tempfile.mkdtemp(prefix=f"mpr-{job.platform_id}-"))
        straggler: Future[StageResult] | None = None
        try:
            for stage, step in _steps(job, toolchain):
                if self.cancel_token.is_cancelled:
                    return self._failed(job, visited, Cancelled(stage=stage), console, artifacts)

                visited.append(stage)
                console.print(str(stage), Style.DIM)
                timeout = self._timeouts.for_stage(str(stage))
                ctx = StageContext(
                    job=job,
                    stage=stage,
                    secrets=secrets,
                    project_root=self._project_root,
                    work_dir=work_dir,
                    secrets_dir=secrets_dir,
                    release_type=self._release_type,
                    timeout=timeout,
                    console=console,
                    artifacts=tuple(artifacts),
                    deadline=None if timeout is None else time.monotonic() + timeout,
                )
                outcome, straggler = self._run_stage(step, ctx)
                match outcome:
                    case Ok(produced):
                        artifacts.extend(produced)
                    case Err(StageNotImplemented() as problem):
                        console.warning(problem.pretty())
                        return JobResult(
                            platform_id=job.platform_id,
                            status=JobStatus.NOT_IMPLEMENTED,
                            artifacts=tuple(artifacts),
                            error=ErrorInfo(stage=stage, cause=problem),
                            stages=tuple(visited),
                        )
                    case Err(problem):
                        return self._failed(
                            job, visited, _redacted(problem, secrets), console, artifacts
                        )
        finally:
            _remove_when_idle(secrets_dir, straggler)

        console.success(f"succeeded ({len(artifacts)} artifact(s))")
        return JobResult(
            platform_id=job.platform_id,
            status=JobStatus.SUCCEEDED,
            artifacts=tuple(artifacts),
            stages=tuple(visited),
        )

    def _run_stage(
        self, step: StageStep, ctx: StageContext
    ) -> tuple[StageResult, Future[StageResult] | None]:
        """Run one stage; on timeout also return the still-running stage thread."""
        if ctx.timeout is None:
            return _guarded(step, ctx), None

        pool = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"mpr-{ctx.job.platform_id}-{ctx.stage}"
        )
        future = pool.submit(_guarded, step, ctx)
        try:
            return future.result(timeout=ctx.timeout), None
        except FutureTimeout:
            # The stage thread is abandoned; ctx refuses new commands and secret files
            # past its deadline and running subprocesses only get the time left.
            return Err(StageTimeout(stage=ctx.stage, timeout_seconds=ctx.timeout)), future
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    def _failed(
        self,
        job: PlatformJob,
        visited: list[Stage],
        cause: JobError,
        console: ConsoleProtocol,
        artifacts: list[ArtifactRef] | None = None,
    ) -> JobResult:
        stage = visited[-1] if visited else Stage.PENDING
        if isinstance(cause, Cancelled):
            stage = cause.stage
        console.error(f"{stage}: {cause.pretty()}")
        return JobResult(
            platform_id=job.platform_id,
            status=JobStatus.FAILED,
            artifacts=tuple(artifacts or ()),
            error=ErrorInfo(stage=stage, cause=cause),
            stages=tuple(visited),
        )


def _redacted(problem: StageProblem, secrets: SecretBundle) -> StageProblem:
    # Failure messages end up in the manifest, so they must not carry secret values.
    if isinstance(problem, StageFailure):
        return StageFailure(
            stage=problem.stage,
            message=secrets.redact(problem.message),
            hint=secrets.redact(problem.hint) if problem.hint else None,
        )
    return problem


def _guarded(step: StageStep, ctx: StageContext) -> StageResult:
    try:
        return step(ctx)
    except Exception as e:  # noqa: BLE001 - a toolchain bug must only fail its own job
        return Err(
            StageFailure(
                stage=ctx.stage,
                message=ctx.secrets.redact(f"unexpected error: {e}"),
                hint=type(e).__name__,
            )
        )


def _remove_when_idle(directory: Path, straggler: Future[StageResult] | None) -> None:
    # A timed-out stage thread may still be writing under the directory.
    if straggler is None or straggler.done():
        shutil.rmtree(directory)
    else:
        straggler.add_done_callback(lambda _: shutil.rmtree(directory, ignore_errors=True))
