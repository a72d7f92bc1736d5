"""Credential resolution.

`resolve` is a pure function of (job, store): it keeps nothing between calls
and the store is always passed in explicitly. It fails closed: an enabled job
missing any required secret gets no bundle at all.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Protocol

from mpr.core.result import Err, Ok, Result
from mpr.release.errors import MissingCredentialError
from mpr.release.model import PlatformJob, SecretBundle


class SecretStore(Protocol):
    def lookup(self, key: str) -> str | None:
        """Return the secret value, or None if the store does not have it."""
        ...


class MappingSecretStore:
    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = dict(values)

    def lookup(self, key: str) -> str | None:
        return self._values.get(key)


class EnvSecretStore:
    """Secrets from environment variables: key `upload_keystore_file` is read
    from `<prefix>UPLOAD_KEYSTORE_FILE`."""

    def __init__(self, environ: Mapping[str, str] | None = None, *, prefix: str = "") -> None:
        self._environ = os.environ if environ is None else environ
        self._prefix = prefix

    def env_name(self, key: str) -> str:
        return f"{self._prefix}{key.upper()}"

    def lookup(self, key: str) -> str | None:
        return self._environ.get(self.env_name(key))


def resolve(job: PlatformJob, store: SecretStore) -> Result[SecretBundle, MissingCredentialError]:
    """Return exactly the secrets listed in `job.required_secrets`.

    Empty values count as missing: CI systems expand an unset secret to "".
    """
    values: dict[str, str] = {}
    missing: list[str] = []
    for key in sorted(job.required_secrets):
        value = store.lookup(key)
        if value is None or not value.strip():
            missing.append(key)
            continue
        values[key] = value

    if missing:
        return Err(MissingCredentialError(platform_id=job.platform_id, missing=tuple(missing)))
    return Ok(SecretBundle(job.platform_id, values))


def missing_secrets(job: PlatformJob, store: SecretStore) -> tuple[str, ...]:
    """Keys `resolve` would report as missing (empty when resolvable)."""
    result = resolve(job, store)
    if isinstance(result, Err):
        return result.error.missing
    return ()
