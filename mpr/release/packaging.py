"""Turn job outputs into release assets.

Directory artifacts (the web distribution) are compressed into
`<out_dir>/<archive_name>.zip`; file artifacts are attached as they are.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path
from zipfile import ZIP_DEFLATED, ZipFile

from mpr.core.result import Err, Ok, Result
from mpr.release.errors import ReleaseError
from mpr.release.model import ArtifactRef


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def zip_directory(src: Path, zip_path: Path) -> None:
    """Zip the contents of `src` (not `src` itself), entries in sorted order."""
    zip_path.parent.mkdir(parents=True, exist_ok=True)
    files = sorted(p for p in src.rglob("*") if p.is_file())
    # Build outputs restored from caches can carry mtime=0, which ZIP cannot store.
    with ZipFile(zip_path, "w", compression=ZIP_DEFLATED, strict_timestamps=False) as zf:
        for p in files:
            zf.write(p, arcname=p.relative_to(src).as_posix())


def archive_directory_artifacts(
    artifacts: Iterable[ArtifactRef], out_dir: Path
) -> Result[tuple[ArtifactRef, ...], ReleaseError]:
    out: list[ArtifactRef] = []
    for artifact in artifacts:
        if not artifact.is_directory:
            out.append(artifact)
            continue

        name = artifact.archive_name or artifact.platform_id
        zip_path = out_dir / f"{name}.zip"
        try:
            zip_directory(artifact.storage_path, zip_path)
        except OSError as e:
            return Err(
                ReleaseError(
                    kind="archive_failed",
                    message=f"failed to archive {artifact.storage_path}: {e}",
                    hint=str(zip_path),
                )
            )
        out.append(
            ArtifactRef(
                platform_id=artifact.platform_id,
                artifact_kind="zip",
                storage_path=zip_path,
            )
        )
    return Ok(tuple(out))
