"""Fan out platform jobs and join them.

Each job gets its own executor thread; no job can observe or abort another.
The orchestrator never fails: whether the run as a whole succeeded is decided
later by the assembler.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait

from mpr.release.executor import CancellationToken, JobExecutor
from mpr.release.model import JobResult, PlatformJob


class Orchestrator:
    def __init__(self, executor: JobExecutor, *, max_workers: int | None = None) -> None:
        self._executor = executor
        self._max_workers = max_workers

    @property
    def cancel_token(self) -> CancellationToken:
        return self._executor.cancel_token

    def cancel(self) -> None:
        """Ask running jobs to stop before their next stage."""
        self._executor.cancel_token.cancel()

    def run(self, jobs: Sequence[PlatformJob]) -> list[JobResult]:
        """Execute every job concurrently; results come back in input order."""
        if not jobs:
            return []

        workers = self._max_workers or len(jobs)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="mpr-job") as pool:
            futures: list[Future[JobResult]] = [
                pool.submit(self._executor.execute, job) for job in jobs
            ]
            try:
                wait(futures)
            except KeyboardInterrupt:
                # Running stages finish; queued stages see the token and stop.
                self.cancel()
                wait(futures)
            return [f.result() for f in futures]
