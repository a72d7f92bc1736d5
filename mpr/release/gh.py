"""GitHub CLI (`gh`) calls used to build and publish the hosted release.

`repo` may be the literal `{owner}/{repo}`: gh expands it from the checkout.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Mapping
from pathlib import Path
from time import sleep

from mpr.core.result import Err, Ok, Result
from mpr.core.structured import as_str_dict, get_str
from mpr.platform.process import ProcessError
from mpr.platform.process import run as run_process
from mpr.release.errors import ReleaseError

GH_TIMEOUT_SECONDS = 60.0
# Asset uploads can be large (installers, web bundle).
GH_UPLOAD_TIMEOUT_SECONDS = 30 * 60.0
GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0

_TRANSIENT_MARKERS = (
    "timed out",
    "timeout",
    "connection reset",
    "connection refused",
    "temporarily unavailable",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
    "tls handshake timeout",
    "network is unreachable",
    "http 429",
    "http 500",
    "http 502",
    "http 503",
    "http 504",
)


def _is_transient_gh_error(error: ProcessError) -> bool:
    if error.timed_out:
        return True
    text = f"{error.stderr}\n{error.stdout}".lower()
    return any(marker in text for marker in _TRANSIENT_MARKERS)


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def _run_gh_retrying(
    *,
    project_root: Path,
    cmd: list[str],
    env: Mapping[str, str] | None,
    timeout: float,
    retry_attempts: int,
) -> Result[str, ProcessError]:
    attempts = max(1, retry_attempts)
    attempt = 1
    while True:
        result = run_process(cmd, cwd=project_root, extra_env=env, timeout=timeout)
        if isinstance(result, Ok) or attempt >= attempts:
            return result
        if not _is_transient_gh_error(result.error):
            return result
        sleep(GH_READ_RETRY_DELAY_SECONDS * attempt)
        attempt += 1


def run_gh_read(
    *,
    project_root: Path,
    cmd: list[str],
    message: str,
    env: Mapping[str, str] | None = None,
    hint: str | None = None,
    timeout: float = GH_TIMEOUT_SECONDS,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ReleaseError]:
    """Run an idempotent gh command, retrying transient network failures."""
    result = _run_gh_retrying(
        project_root=project_root,
        cmd=cmd,
        env=env,
        timeout=timeout,
        retry_attempts=retry_attempts,
    )
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="invalid_input", message=message, hint=result.error.stderr.strip() or hint
            )
        )
    return result


def gh_api_json(
    *,
    project_root: Path,
    endpoint: str,
    fields: Mapping[str, str] | None = None,
    env: Mapping[str, str] | None = None,
) -> Result[object, ReleaseError]:
    """Call `gh api`; with `fields` the request becomes a POST."""
    cmd = ["gh", "api", endpoint]
    for key, value in (fields or {}).items():
        cmd += ["-f", f"{key}={value}"]

    result = run_gh_read(
        project_root=project_root,
        cmd=cmd,
        message=f"gh api failed: {endpoint}",
        env=env,
        hint=endpoint,
    )
    if isinstance(result, Err):
        return result

    try:
        obj: object = json.loads(result.value)
    except json.JSONDecodeError as e:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message=f"gh api returned invalid JSON: {e}",
                hint=endpoint,
            )
        )
    return Ok(obj)


def latest_release_tag(
    *, project_root: Path, repo: str, env: Mapping[str, str] | None = None
) -> Result[str | None, ReleaseError]:
    """Tag of the latest published release, None when the repo has none."""
    endpoint = f"repos/{repo}/releases/latest"
    result = _run_gh_retrying(
        project_root=project_root,
        cmd=["gh", "api", endpoint],
        env=env,
        timeout=GH_TIMEOUT_SECONDS,
        retry_attempts=GH_READ_RETRY_ATTEMPTS,
    )
    if isinstance(result, Err):
        if "http 404" in result.error.stderr.lower():
            return Ok(None)
        return Err(
            ReleaseError(
                kind="invalid_input",
                message="failed to query the latest release",
                hint=result.error.stderr.strip() or endpoint,
            )
        )

    try:
        data = as_str_dict(json.loads(result.value))
    except json.JSONDecodeError as e:
        return Err(ReleaseError(kind="invalid_input", message=f"invalid JSON: {e}", hint=endpoint))
    if data is None:
        return Err(ReleaseError(kind="invalid_input", message="unexpected payload", hint=endpoint))
    return Ok(get_str(data, "tag_name"))


def generate_release_notes(
    *,
    project_root: Path,
    repo: str,
    tag: str,
    target: str,
    previous_tag: str | None,
    env: Mapping[str, str] | None = None,
) -> Result[str, ReleaseError]:
    fields = {"tag_name": tag, "target_commitish": target}
    if previous_tag:
        fields["previous_tag_name"] = previous_tag

    endpoint = f"repos/{repo}/releases/generate-notes"
    obj = gh_api_json(project_root=project_root, endpoint=endpoint, fields=fields, env=env)
    if isinstance(obj, Err):
        return obj

    data = as_str_dict(obj.value)
    body = get_str(data, "body") if data is not None else None
    if body is None:
        return Err(
            ReleaseError(
                kind="invalid_input",
                message="generate-notes payload has no body",
                hint=endpoint,
            )
        )
    return Ok(body)


def create_release(
    *,
    project_root: Path,
    tag: str,
    notes_file: Path,
    target: str,
    files: list[Path],
    repo: str | None = None,
    env: Mapping[str, str] | None = None,
) -> Result[str, ReleaseError]:
    """Create a pre-release and upload `files`; returns the release URL.

    Not retried: a partial create is not idempotent.
    """
    cmd = [
        "gh",
        "release",
        "create",
        tag,
        "--title",
        tag,
        "--notes-file",
        str(notes_file),
        "--target",
        target,
        "--prerelease",
    ]
    if repo and repo != "{owner}/{repo}":
        cmd += ["--repo", repo]
    cmd += [str(f) for f in files]

    result = run_process(cmd, cwd=project_root, extra_env=env, timeout=GH_UPLOAD_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="publish_failed",
                message=f"gh release create failed for {tag}",
                hint=result.error.stderr.strip() or None,
            )
        )
    return Ok(result.value.strip())
