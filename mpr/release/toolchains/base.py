from __future__ import annotations

import base64
import binascii
import os
import shlex
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from mpr.core.result import Err, Ok, Result
from mpr.output.console import ConsoleProtocol, Style
from mpr.platform.files import write_private_bytes
from mpr.platform.process import run as run_process
from mpr.release.errors import StageFailure, StageProblem, StageTimeout
from mpr.release.model import ArtifactRef, PlatformJob, ReleaseType, SecretBundle
from mpr.release.states import Stage

StageResult = Result[tuple[ArtifactRef, ...], StageProblem]

_STDERR_TAIL_LINES = 20


@dataclass(frozen=True, slots=True)
class StageContext:
    """Everything a toolchain stage may touch.

    `work_dir` survives the job (build outputs); `secrets_dir` is a private
    temporary directory removed as soon as the job ends. Once `deadline`
    (a `time.monotonic()` value) has passed, the stage has already been
    reported as timed out: `run` and `secret_file` refuse to start anything.
    """

    job: PlatformJob
    stage: Stage
    secrets: SecretBundle
    project_root: Path
    work_dir: Path
    secrets_dir: Path
    release_type: ReleaseType
    timeout: float | None
    console: ConsoleProtocol
    artifacts: tuple[ArtifactRef, ...] = ()
    deadline: float | None = None

    def remaining(self) -> float | None:
        """Seconds left in this stage, or the plain stage timeout without a deadline."""
        if self.deadline is None:
            return self.timeout
        return self.deadline - time.monotonic()

    def _expired(self) -> Err[StageTimeout] | None:
        left = self.remaining()
        if left is not None and left <= 0:
            return Err(StageTimeout(stage=self.stage, timeout_seconds=self.timeout or 0.0))
        return None

    def fail(self, message: str, hint: str | None = None) -> Err[StageFailure]:
        return Err(StageFailure(stage=self.stage, message=message, hint=hint))

    def artifact(self, kind: str, path: Path, archive_name: str | None = None) -> ArtifactRef:
        return ArtifactRef(
            platform_id=self.job.platform_id,
            artifact_kind=kind,
            storage_path=path,
            archive_name=archive_name,
        )

    def module_path(self, *parts: str | Path) -> Path:
        return self.project_root.joinpath(*parts)

    def run(
        self,
        cmd: list[str],
        *,
        extra_env: dict[str, str] | None = None,
        cwd: Path | None = None,
    ) -> Result[str, StageProblem]:
        """Run an external collaborator; failures become stage problems."""
        expired = self._expired()
        if expired is not None:
            return expired

        self.console.print(f"$ {shlex.join(cmd)}", Style.DIM)
        result = run_process(
            cmd, cwd=cwd or self.project_root, extra_env=extra_env, timeout=self.remaining()
        )
        if isinstance(result, Ok):
            return result

        e = result.error
        if e.timed_out:
            return Err(StageTimeout(stage=self.stage, timeout_seconds=self.timeout or 0.0))

        output = e.stderr.strip() or e.stdout.strip()
        tail = "\n".join(output.splitlines()[-_STDERR_TAIL_LINES:]) or None
        return Err(
            StageFailure(
                stage=self.stage,
                message=self.secrets.redact(str(e)),
                hint=self.secrets.redact(tail) if tail else None,
            )
        )

    def secret_file(
        self, key: str, filename: str, *, base64_encoded: bool = False
    ) -> Result[Path, StageProblem]:
        """Materialise a secret as a private file under `secrets_dir`."""
        expired = self._expired()
        if expired is not None:
            return expired

        value = self.secrets.get(key)
        if value is None:
            return self.fail(f"secret not resolved for this job: {key}")

        if base64_encoded:
            try:
                data = base64.b64decode("".join(value.split()), validate=True)
            except (binascii.Error, ValueError):
                return self.fail(f"secret {key} is not valid base64")
        else:
            data = value.encode("utf-8")

        path = self.secrets_dir / filename
        try:
            write_private_bytes(path, data)
        except OSError as e:
            return self.fail(f"failed to write {filename}: {e}")
        return Ok(path)


class Toolchain(Protocol):
    """One platform's collaborators, one method per executor stage."""

    def build(self, ctx: StageContext) -> StageResult: ...

    def sign(self, ctx: StageContext) -> StageResult: ...

    def package(self, ctx: StageContext) -> StageResult: ...

    def publish(self, ctx: StageContext) -> StageResult: ...


def nothing_to_do() -> StageResult:
    return Ok(())


def gradlew() -> str:
    return "gradlew.bat" if os.name == "nt" else "./gradlew"


def gradle_task(
    ctx: StageContext, task: str, *args: str, extra_env: dict[str, str] | None = None
) -> Result[str, StageProblem]:
    return ctx.run([gradlew(), f":{ctx.job.package_name}:{task}", *args], extra_env=extra_env)


def files_with_suffix(directory: Path, suffix: str) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix))
