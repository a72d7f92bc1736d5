from __future__ import annotations

from pathlib import Path

import pytest

from mpr.core.result import Err, Ok, Result
from mpr.output.console import MockConsole
from mpr.platform.process import ProcessError
from mpr.release import versioning
from mpr.release.versioning import (
    GitVersionPolicy,
    StaticVersionPolicy,
    Version,
    channel_bit,
    count_release_tags,
    version_code,
)


class TestVersionCode:
    def test_internal_channel_bit_is_zero(self) -> None:
        assert version_code(100, 4, "internal") == 208

    def test_beta_channel_bit_is_one(self) -> None:
        assert version_code(100, 4, "beta") == 209

    def test_channel_bit(self) -> None:
        assert channel_bit("internal") == 0
        assert channel_bit("beta") == 1

    @pytest.mark.parametrize("release_type", ["internal", "beta"])
    @pytest.mark.parametrize("commits", [0, 1, 57, 1000])
    def test_monotonic_in_commits(self, release_type: str, commits: int) -> None:
        current = version_code(commits, 3, release_type)  # type: ignore[arg-type]
        following = version_code(commits + 1, 3, release_type)  # type: ignore[arg-type]
        assert following >= current + 1

    def test_monotonic_in_tags(self) -> None:
        assert version_code(10, 2, "internal") > version_code(10, 1, "internal")

    def test_channels_never_collide(self) -> None:
        internal = {version_code(c, t, "internal") for c in range(20) for t in range(5)}
        beta = {version_code(c, t, "beta") for c in range(20) for t in range(5)}
        assert internal.isdisjoint(beta)

    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValueError):
            version_code(-1, 0, "internal")


def test_count_release_tags_excludes_beta() -> None:
    assert count_release_tags(["1.0.0", "1.1.0-beta", "beta-2", "2.0.0"]) == 2


def test_static_policy() -> None:
    assert StaticVersionPolicy(Version("1.2.3", 42)).resolve() == Ok(Version("1.2.3", 42))


class FakeProcess:
    def __init__(self, responses: dict[str, Result[str, ProcessError]]) -> None:
        self.responses = responses
        self.calls: list[list[str]] = []

    def __call__(
        self,
        cmd: list[str],
        *,
        cwd: Path,
        extra_env: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        del cwd, extra_env, timeout
        self.calls.append(cmd)
        key = cmd[3] if cmd[0] == "git" else "gradle"
        return self.responses[key]


def _fail(stderr: str = "boom") -> Err[ProcessError]:
    return Err(ProcessError(("x",), 1, "", stderr))


@pytest.fixture
def fake(monkeypatch: pytest.MonkeyPatch) -> FakeProcess:
    proc = FakeProcess(
        {
            "rev-list": Ok("120\n"),
            "tag": Ok("1.0.0\n1.0.1-beta\n1.1.0\n"),
            "gradle": Ok(""),
        }
    )
    monkeypatch.setattr("mpr.git.repository.run_process", proc)
    monkeypatch.setattr(versioning, "run_process", proc)
    return proc


def _policy(tmp_path: Path, **kwargs: object) -> GitVersionPolicy:
    return GitVersionPolicy(
        project_root=tmp_path,
        release_type=kwargs.pop("release_type", "internal"),  # type: ignore[arg-type]
        console=MockConsole(),
        **kwargs,  # type: ignore[arg-type]
    )


class TestGitVersionPolicy:
    def test_name_from_version_file(self, fake: FakeProcess, tmp_path: Path) -> None:
        (tmp_path / "version.txt").write_text("2024.1.0\n", encoding="utf-8")

        result = _policy(tmp_path).resolve()

        assert result == Ok(Version(name="2024.1.0", code=(120 + 2) << 1))
        assert any(c[-1] == "versionFile" for c in fake.calls)

    def test_beta_sets_channel_bit(self, fake: FakeProcess, tmp_path: Path) -> None:
        (tmp_path / "version.txt").write_text("2024.1.0", encoding="utf-8")

        result = _policy(tmp_path, release_type="beta").resolve()

        assert isinstance(result, Ok)
        assert result.value.code == ((120 + 2) << 1) | 1

    def test_override_skips_gradle(self, fake: FakeProcess, tmp_path: Path) -> None:
        result = _policy(tmp_path, override="3.0.0").resolve()

        assert isinstance(result, Ok)
        assert result.value.name == "3.0.0"
        assert not any(c[0] != "git" for c in fake.calls)

    def test_falls_back_to_code_without_version_file(
        self, fake: FakeProcess, tmp_path: Path
    ) -> None:
        result = _policy(tmp_path, version_task=None).resolve()

        assert result == Ok(Version(name=str(244), code=244))

    def test_gradle_failure_warns_and_falls_back(
        self, fake: FakeProcess, tmp_path: Path
    ) -> None:
        fake.responses["gradle"] = _fail("Task 'versionFile' not found")
        console = MockConsole()
        policy = GitVersionPolicy(project_root=tmp_path, release_type="internal", console=console)

        result = policy.resolve()

        assert result == Ok(Version(name="244", code=244))
        assert console.has_warning()

    def test_git_failure_is_an_error(self, fake: FakeProcess, tmp_path: Path) -> None:
        fake.responses["rev-list"] = _fail("fatal: not a git repository")

        result = _policy(tmp_path).resolve()

        assert isinstance(result, Err)
        assert result.error.kind == "version_failed"
