from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from mpr.core.result import Err, Ok, Result
from mpr.output.console import MockConsole
from mpr.platform.process import ProcessError
from mpr.release import gh as gh_mod
from mpr.release.assembler import ReleaseFiles
from mpr.release.model import ArtifactRef, ReleaseManifest
from mpr.release.publisher import DryRunPublisher, GhReleasePublisher


def _release(tmp_path: Path) -> tuple[ReleaseManifest, ReleaseFiles]:
    apk = tmp_path / "app.apk"
    manifest = ReleaseManifest(
        version="1.4.0",
        version_code=300,
        commit_ref="abc",
        changelog="* Fix\n",
        artifacts=(ArtifactRef("android", "apk", apk),),
        succeeded=("android",),
    )
    files = ReleaseFiles(
        manifest=tmp_path / "release-manifest.json",
        changelog=tmp_path / "changelogGithub",
        beta_changelog=tmp_path / "changelogBeta",
    )
    return manifest, files


class TestGhReleasePublisher:
    def test_uploads_artifacts_and_manifest(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        calls: list[tuple[list[str], object]] = []

        def fake_run(
            cmd: list[str], *, cwd: Path, extra_env: object = None, timeout: float | None = None
        ) -> Result[str, ProcessError]:
            calls.append((cmd, extra_env))
            return Ok("https://example.test/releases/1.4.0\n")

        monkeypatch.setattr(gh_mod.shutil, "which", lambda name: "/usr/bin/gh")
        monkeypatch.setattr(gh_mod, "run_process", fake_run)
        manifest, files = _release(tmp_path)

        result = GhReleasePublisher(project_root=tmp_path, token="s3cret").publish(
            manifest, files, target_branch="dev"
        )

        assert isinstance(result, Ok)
        assert result.value.tag == "1.4.0"
        assert result.value.url == "https://example.test/releases/1.4.0"
        assert result.value.files == (tmp_path / "app.apk", files.manifest)
        cmd, env = calls[0]
        assert "--prerelease" in cmd
        assert cmd[-2:] == [str(tmp_path / "app.apk"), str(files.manifest)]
        assert env == {"GH_TOKEN": "s3cret"}

    def test_missing_gh(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setattr(gh_mod.shutil, "which", lambda name: None)
        manifest, files = _release(tmp_path)

        result = GhReleasePublisher(project_root=tmp_path).publish(
            manifest, files, target_branch="dev"
        )

        assert isinstance(result, Err)
        assert result.error.kind == "gh_missing"

    def test_refuses_stable_release(self, tmp_path: Path) -> None:
        manifest, files = _release(tmp_path)
        stable = dataclasses.replace(manifest, prerelease=False)

        result = GhReleasePublisher(project_root=tmp_path).publish(
            stable, files, target_branch="dev"
        )

        assert isinstance(result, Err)
        assert result.error.kind == "invalid_input"


def test_dry_run_records_without_calling_gh(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    def forbidden(*args: object, **kwargs: object) -> None:
        raise AssertionError("gh must not run in dry-run mode")

    monkeypatch.setattr(gh_mod, "run_process", forbidden)
    console = MockConsole()
    publisher = DryRunPublisher(console)
    manifest, files = _release(tmp_path)

    result = publisher.publish(manifest, files, target_branch="dev")

    assert isinstance(result, Ok)
    assert result.value.url is None
    assert publisher.published == [result.value]
    assert console.find("dry run")
