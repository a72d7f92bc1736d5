"""Release service: descriptors → orchestrator → assembler → publisher.

This is the only entry point the CLI needs. Collaborators that talk to the
outside world (toolchains, version policy, changelog source, publisher) can
be injected; by default they are the real gradle/gh/git-backed ones.
"""

from __future__ import annotations

from pathlib import Path

from mpr.core.config import Config
from mpr.core.result import Err
from mpr.git import Repository
from mpr.output.console import ConsoleProtocol
from mpr.release import config as rc
from mpr.release.assembler import ReleaseAssembler, write_release_files
from mpr.release.changelog import (
    ChangelogSource,
    GitHubReleaseNotes,
    GitLogChangelog,
    beta_changelog,
)
from mpr.release.contracts import ReleaseRequest, RunOutcome
from mpr.release.credentials import SecretStore
from mpr.release.descriptors import build_jobs
from mpr.release.errors import ReleaseError
from mpr.release.executor import CancellationToken, JobExecutor, ToolchainFactory
from mpr.release.orchestrator import Orchestrator
from mpr.release.publisher import DryRunPublisher, GhReleasePublisher, ReleasePublisher
from mpr.release.toolchains import default_toolchain
from mpr.release.versioning import GitVersionPolicy, VersionPolicy


def release_out_dir(request: ReleaseRequest, config: Config) -> Path:
    return request.project_root / config.release.out_dir


def default_changelog_source(
    request: ReleaseRequest, config: Config, *, token: str | None
) -> ChangelogSource:
    if config.release.changelog == "git":
        return GitLogChangelog(project_root=request.project_root)
    return GitHubReleaseNotes(
        project_root=request.project_root,
        repo=config.release.repository,
        env={"GH_TOKEN": token} if token else None,
    )


def run_release(
    request: ReleaseRequest,
    config: Config,
    *,
    console: ConsoleProtocol,
    secret_store: SecretStore,
    toolchain_for: ToolchainFactory = default_toolchain,
    version_policy: VersionPolicy | None = None,
    changelog_source: ChangelogSource | None = None,
    publisher: ReleasePublisher | None = None,
    cancel_token: CancellationToken | None = None,
) -> RunOutcome:
    jobs = build_jobs(request, config)
    if isinstance(jobs, Err):
        return RunOutcome(results=(), error=jobs.error)

    out_dir = release_out_dir(request, config)
    executor = JobExecutor(
        secret_store=secret_store,
        project_root=request.project_root,
        out_dir=out_dir,
        console=console,
        release_type=request.release_type,
        timeouts=config.timeouts,
        toolchain_for=toolchain_for,
        cancel_token=cancel_token,
    )
    orchestrator = Orchestrator(executor, max_workers=config.release.max_workers)

    enabled = [j.platform_id for j in jobs.value if j.enabled]
    console.header(f"Release ({request.release_type}): {', '.join(enabled) or 'no platforms'}")
    results = tuple(orchestrator.run(jobs.value))

    if orchestrator.cancel_token.is_cancelled:
        return RunOutcome(
            results=results,
            error=ReleaseError(
                kind="cancelled",
                message="release cancelled",
                hint="Stages that already ran are not rolled back.",
            ),
        )

    token = secret_store.lookup(rc.GITHUB_TOKEN_SECRET)
    commit = Repository(request.project_root).head_sha()
    if isinstance(commit, Err):
        console.warning(
            f"cannot resolve HEAD ({commit.error.message}); using {request.target_branch}"
        )
        commit_ref = request.target_branch
    else:
        commit_ref = commit.value

    assembler = ReleaseAssembler(
        out_dir=out_dir,
        target_branch=request.target_branch,
        commit_ref=commit_ref,
        console=console,
    )
    manifest = assembler.assemble(
        results,
        version_policy
        or GitVersionPolicy(
            project_root=request.project_root,
            release_type=request.release_type,
            console=console,
            override=request.version_override,
            version_task=config.release.version_task,
            version_file=config.release.version_file,
        ),
        changelog_source or default_changelog_source(request, config, token=token),
    )
    if isinstance(manifest, Err):
        return RunOutcome(results=results, error=manifest.error)

    files = write_release_files(
        manifest.value, out_dir=out_dir, beta_changelog=beta_changelog(request.project_root)
    )
    if isinstance(files, Err):
        return RunOutcome(results=results, manifest=manifest.value, error=files.error)

    if publisher is None:
        if request.dry_run:
            publisher = DryRunPublisher(console)
        else:
            publisher = GhReleasePublisher(
                project_root=request.project_root,
                repo=config.release.repository,
                token=token,
            )

    published = publisher.publish(
        manifest.value, files.value, target_branch=request.target_branch
    )
    if isinstance(published, Err):
        return RunOutcome(results=results, manifest=manifest.value, error=published.error)

    return RunOutcome(results=results, manifest=manifest.value, published=published.value)

