from __future__ import annotations

import json
from pathlib import Path
from typing import NamedTuple

import pytest

from mpr.core.config import Config, DesktopConfig, ReleaseConfig
from mpr.core.result import Err, Ok, Result
from mpr.output.console import MockConsole
from mpr.output.errors import run_exit_code
from mpr.platform.process import ProcessError
from mpr.release import config as rc
from mpr.release.assembler import ReleaseFiles
from mpr.release.contracts import PublishedRelease, ReleaseRequest, RunOutcome
from mpr.release.credentials import MappingSecretStore
from mpr.release.errors import (
    MissingCredentialError,
    NoArtifactsError,
    ReleaseError,
    ReleaseNotesGenerationError,
)
from mpr.release.executor import CancellationToken
from mpr.release.model import PlatformJob, ReleaseManifest
from mpr.release.publisher import DryRunPublisher, ReleasePublisher
from mpr.release.service import run_release
from mpr.release.states import JobStatus, Stage
from mpr.release.toolchains import StageContext, StageResult
from mpr.release.versioning import StaticVersionPolicy, Version

ANDROID_SECRETS = {
    key: f"value-{key}"
    for key in (
        *rc.ANDROID_RELEASE_KEYSTORE_SECRETS,
        rc.GOOGLE_SERVICES_SECRET,
        rc.FIREBASE_CREDS_SECRET,
    )
}
LINUX_SIGNING = {key: f"value-{key}" for key in rc.desktop_signing_secrets("linux")}


class FakeToolchain:
    """Succeeds every stage; `package` writes one artifact per job."""

    def __init__(self, calls: list[tuple[str, Stage]]) -> None:
        self.calls = calls

    def _record(self, ctx: StageContext) -> None:
        self.calls.append((ctx.job.platform_id, ctx.stage))

    def build(self, ctx: StageContext) -> StageResult:
        self._record(ctx)
        return Ok(())

    def sign(self, ctx: StageContext) -> StageResult:
        self._record(ctx)
        return Ok(())

    def package(self, ctx: StageContext) -> StageResult:
        self._record(ctx)
        path = ctx.work_dir / f"{ctx.job.platform_id}.bin"
        path.write_bytes(ctx.job.platform_id.encode())
        return Ok((ctx.artifact("bin", path),))

    def publish(self, ctx: StageContext) -> StageResult:
        self._record(ctx)
        return Ok(())


class FixedChangelog:
    def generate(
        self, version: Version, target_branch: str
    ) -> Result[str, ReleaseNotesGenerationError]:
        return Ok(f"* Release {version.name}\n")


class FailingPublisher:
    def publish(
        self, manifest: ReleaseManifest, files: ReleaseFiles, *, target_branch: str
    ) -> Result[PublishedRelease, ReleaseError]:
        return Err(ReleaseError(kind="publish_failed", message="gh release create failed"))


class FakeGit:
    def __init__(self, *, head: Result[str, ProcessError] | None = None) -> None:
        self.head = head or Ok("abc123\n")

    def __call__(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        match cmd[3]:
            case "rev-parse":
                return self.head
            case "log":
                return Ok("Ship beta\n")
            case _:
                raise AssertionError(f"unexpected git call: {cmd}")


@pytest.fixture(autouse=True)
def fake_git(monkeypatch: pytest.MonkeyPatch) -> FakeGit:
    git = FakeGit()
    monkeypatch.setattr("mpr.git.repository.run_process", git)
    return git


def _request(tmp_path: Path, **kwargs: object) -> ReleaseRequest:
    return ReleaseRequest(
        project_root=tmp_path,
        android_package_name="cmp-android",
        ios_package_name="cmp-ios",
        desktop_package_name="cmp-desktop",
        web_package_name="cmp-web",
        **kwargs,  # type: ignore[arg-type]
    )


def _config(**desktop: object) -> Config:
    return Config(
        release=ReleaseConfig(out_dir="out"),
        desktop=DesktopConfig(**desktop),  # type: ignore[arg-type]
    )


class Run(NamedTuple):
    outcome: RunOutcome
    calls: list[tuple[str, Stage]]
    publisher: DryRunPublisher


def _run(
    request: ReleaseRequest,
    config: Config,
    secrets: dict[str, str],
    *,
    publisher: ReleasePublisher | None = None,
    cancel_token: CancellationToken | None = None,
) -> Run:
    calls: list[tuple[str, Stage]] = []
    console = MockConsole()
    dry_run = DryRunPublisher(console)
    outcome = run_release(
        request,
        config,
        console=console,
        secret_store=MappingSecretStore(secrets),
        toolchain_for=lambda job: FakeToolchain(calls),
        version_policy=StaticVersionPolicy(Version("2024.6.0", 480)),
        changelog_source=FixedChangelog(),
        publisher=publisher or dry_run,
        cancel_token=cancel_token,
    )
    return Run(outcome, calls, dry_run)


class TestPartialFailureScenario:
    """Android succeeds, iOS is not requested, signed desktop lacks its certificate."""

    @pytest.fixture
    def run(self, tmp_path: Path) -> Run:
        secrets = dict(ANDROID_SECRETS)
        secrets.update(LINUX_SIGNING)
        del secrets["linux_signing_certificate"]
        request = _request(tmp_path, only=frozenset({rc.ANDROID, rc.DESKTOP_LINUX}))
        config = _config(targets=("linux",), publish_command=("./publish.sh",))
        return _run(request, config, secrets)

    def test_statuses(self, run: Run) -> None:
        outcome = run.outcome
        statuses = {r.platform_id: r.status for r in outcome.results}
        assert statuses[rc.ANDROID] == JobStatus.SUCCEEDED
        assert statuses[rc.IOS] == JobStatus.SKIPPED
        assert statuses[rc.DESKTOP_LINUX] == JobStatus.FAILED
        assert statuses[rc.WEB] == JobStatus.SKIPPED

    def test_desktop_failed_on_credentials_without_side_effects(self, run: Run) -> None:
        desktop = next(r for r in run.outcome.results if r.platform_id == rc.DESKTOP_LINUX)
        assert desktop.error is not None
        assert isinstance(desktop.error.cause, MissingCredentialError)
        assert desktop.error.cause.missing == ("linux_signing_certificate",)
        assert desktop.artifacts == ()
        assert not [c for c in run.calls if c[0] == rc.DESKTOP_LINUX]

    def test_manifest_contains_only_android(self, run: Run) -> None:
        outcome = run.outcome
        assert outcome.success
        assert run_exit_code(outcome) == 0
        manifest = outcome.manifest
        assert manifest is not None
        assert manifest.prerelease is True
        assert [a.platform_id for a in manifest.artifacts] == [rc.ANDROID]
        assert [pid for pid, _ in manifest.failures] == [rc.DESKTOP_LINUX]
        assert run.publisher.published[0].tag == "2024.6.0"

    def test_release_files_written(self, run: Run, tmp_path: Path) -> None:
        out = tmp_path / "out"
        data = json.loads((out / rc.MANIFEST_FILENAME).read_text(encoding="utf-8"))
        assert data["commit_ref"] == "abc123"
        assert data["version_code"] == 480
        assert (out / rc.CHANGELOG_FILENAME).read_text(encoding="utf-8") == "* Release 2024.6.0\n"
        assert (out / rc.BETA_CHANGELOG_FILENAME).read_text(encoding="utf-8") == "* Ship beta\n"

    def test_no_secret_value_persisted(self, run: Run, tmp_path: Path) -> None:
        manifest_text = (tmp_path / "out" / rc.MANIFEST_FILENAME).read_text(encoding="utf-8")
        for value in (*ANDROID_SECRETS.values(), *LINUX_SIGNING.values()):
            assert value not in manifest_text


def test_all_platforms_disabled_reports_no_artifacts(tmp_path: Path) -> None:
    outcome, calls, publisher = _run(_request(tmp_path, only=frozenset()), _config(), {})

    assert all(r.status == JobStatus.SKIPPED for r in outcome.results)
    assert isinstance(outcome.error, NoArtifactsError)
    assert outcome.manifest is None
    assert not outcome.success
    assert run_exit_code(outcome) == 3
    assert calls == []
    assert publisher.published == []
    assert not (tmp_path / "out" / rc.MANIFEST_FILENAME).exists()


def test_one_result_per_job_in_reporting_order(tmp_path: Path) -> None:
    secrets = dict(ANDROID_SECRETS)
    outcome, _, _ = _run(_request(tmp_path), _config(), secrets)

    assert tuple(r.platform_id for r in outcome.results) == rc.PLATFORM_ORDER


def test_invalid_request_runs_nothing(tmp_path: Path) -> None:
    outcome, calls, _ = _run(_request(tmp_path, publish_ios=True), _config(), {})

    assert outcome.results == ()
    assert isinstance(outcome.error, ReleaseError)
    assert outcome.error.kind == "invalid_input"
    assert run_exit_code(outcome) == 1
    assert calls == []


def test_cancelled_run_is_not_assembled(tmp_path: Path) -> None:
    token = CancellationToken()
    token.cancel()

    outcome, calls, publisher = _run(
        _request(tmp_path), _config(), dict(ANDROID_SECRETS), cancel_token=token
    )

    assert isinstance(outcome.error, ReleaseError)
    assert outcome.error.kind == "cancelled"
    assert outcome.manifest is None
    assert calls == []
    assert publisher.published == []


def test_publish_failure_keeps_manifest(tmp_path: Path) -> None:
    outcome, _, _ = _run(
        _request(tmp_path, only=frozenset({rc.WEB})),
        _config(),
        {},
        publisher=FailingPublisher(),
    )

    assert outcome.manifest is not None
    assert isinstance(outcome.error, ReleaseError)
    assert outcome.error.kind == "publish_failed"
    assert run_exit_code(outcome) == 3


def test_unresolvable_head_falls_back_to_branch(tmp_path: Path, fake_git: FakeGit) -> None:
    fake_git.head = Err(ProcessError(("git",), 128, "", "fatal: not a git repository"))

    outcome, _, _ = _run(
        _request(tmp_path, only=frozenset({rc.WEB}), target_branch="main"), _config(), {}
    )

    assert outcome.manifest is not None
    assert outcome.manifest.commit_ref == "main"


def test_dry_run_request_uses_dry_run_publisher(tmp_path: Path) -> None:
    console = MockConsole()
    outcome = run_release(
        _request(tmp_path, only=frozenset({rc.WEB}), dry_run=True),
        _config(),
        console=console,
        secret_store=MappingSecretStore({}),
        toolchain_for=lambda job: FakeToolchain([]),
        version_policy=StaticVersionPolicy(Version("1.0.0", 2)),
        changelog_source=FixedChangelog(),
    )

    assert outcome.success
    assert outcome.published is not None
    assert outcome.published.url is None
    assert console.find("dry run")


def test_publish_stage_runs_only_when_enabled(tmp_path: Path) -> None:
    secrets = dict(ANDROID_SECRETS)
    _, calls, _ = _run(
        _request(tmp_path, only=frozenset({rc.ANDROID, rc.WEB})), _config(), secrets
    )

    assert (rc.ANDROID, Stage.PUBLISHING) not in calls
    assert (rc.WEB, Stage.PUBLISHING) in calls


def test_jobs_match_descriptor(tmp_path: Path) -> None:
    # Disabled jobs never reach the toolchain factory.
    seen: list[PlatformJob] = []

    def factory(job: PlatformJob) -> FakeToolchain:
        seen.append(job)
        return FakeToolchain([])

    run_release(
        _request(tmp_path, only=frozenset({rc.WEB})),
        _config(),
        console=MockConsole(),
        secret_store=MappingSecretStore({}),
        toolchain_for=factory,
        version_policy=StaticVersionPolicy(Version("1.0.0", 2)),
        changelog_source=FixedChangelog(),
        publisher=DryRunPublisher(MockConsole()),
    )

    assert [j.platform_id for j in seen] == [rc.WEB]
