from __future__ import annotations

import threading
from pathlib import Path

from mpr.core.result import Ok
from mpr.output.console import MockConsole
from mpr.release.credentials import MappingSecretStore
from mpr.release.executor import JobExecutor
from mpr.release.model import PlatformJob
from mpr.release.orchestrator import Orchestrator
from mpr.release.states import JobStatus
from mpr.release.toolchains import StageContext, StageResult


class RecordingToolchain:
    """Fails the build of the platforms listed in `failing`."""

    def __init__(
        self,
        *,
        failing: frozenset[str] = frozenset(),
        barrier: threading.Barrier | None = None,
    ) -> None:
        self.failing = failing
        self.barrier = barrier

    def build(self, ctx: StageContext) -> StageResult:
        if self.barrier is not None:
            # Only passes when every job is building at the same time.
            self.barrier.wait(timeout=5)
        if ctx.job.platform_id in self.failing:
            return ctx.fail("build failed")
        return Ok(())

    def sign(self, ctx: StageContext) -> StageResult:
        return Ok(())

    def package(self, ctx: StageContext) -> StageResult:
        path = ctx.work_dir / "out.bin"
        path.write_bytes(ctx.job.platform_id.encode())
        return Ok((ctx.artifact("bin", path),))

    def publish(self, ctx: StageContext) -> StageResult:
        return Ok(())


def _jobs(*ids: str) -> list[PlatformJob]:
    return [
        PlatformJob(platform_id=i, enabled=True, publish_enabled=False, package_name=i)
        for i in ids
    ]


def _orchestrator(tmp_path: Path, toolchain: RecordingToolchain) -> Orchestrator:
    executor = JobExecutor(
        secret_store=MappingSecretStore({}),
        project_root=tmp_path,
        out_dir=tmp_path / "out",
        console=MockConsole(),
        toolchain_for=lambda job: toolchain,
    )
    return Orchestrator(executor)


def test_results_in_input_order(tmp_path: Path) -> None:
    ids = ("web", "android", "desktop-linux", "ios")

    results = _orchestrator(tmp_path, RecordingToolchain()).run(_jobs(*ids))

    assert tuple(r.platform_id for r in results) == ids
    assert all(r.status == JobStatus.SUCCEEDED for r in results)


def test_jobs_run_concurrently(tmp_path: Path) -> None:
    ids = ("android", "web", "desktop-linux")
    toolchain = RecordingToolchain(barrier=threading.Barrier(len(ids)))

    results = _orchestrator(tmp_path, toolchain).run(_jobs(*ids))

    assert all(r.status == JobStatus.SUCCEEDED for r in results)


def test_one_failure_does_not_affect_siblings(tmp_path: Path) -> None:
    toolchain = RecordingToolchain(failing=frozenset({"android"}))

    results = _orchestrator(tmp_path, toolchain).run(_jobs("android", "web", "desktop-linux"))

    statuses = {r.platform_id: r.status for r in results}
    assert statuses == {
        "android": JobStatus.FAILED,
        "web": JobStatus.SUCCEEDED,
        "desktop-linux": JobStatus.SUCCEEDED,
    }


def test_work_dirs_are_isolated(tmp_path: Path) -> None:
    results = _orchestrator(tmp_path, RecordingToolchain()).run(_jobs("android", "web"))

    paths = {r.platform_id: r.artifacts[0].storage_path for r in results}
    assert paths["android"].read_bytes() == b"android"
    assert paths["web"].read_bytes() == b"web"
    assert paths["android"] != paths["web"]


def test_empty_job_list(tmp_path: Path) -> None:
    assert _orchestrator(tmp_path, RecordingToolchain()).run([]) == []


def test_cancel_before_run_fails_every_job(tmp_path: Path) -> None:
    orchestrator = _orchestrator(tmp_path, RecordingToolchain())
    orchestrator.cancel()

    results = orchestrator.run(_jobs("android", "web"))

    assert orchestrator.cancel_token.is_cancelled
    assert all(r.status == JobStatus.FAILED for r in results)
