from __future__ import annotations

from mpr.core.result import Err, Ok
from mpr.release.credentials import (
    EnvSecretStore,
    MappingSecretStore,
    missing_secrets,
    resolve,
)
from mpr.release.model import PlatformJob, SecretBundle


def _job(*secrets: str) -> PlatformJob:
    return PlatformJob(
        platform_id="android",
        enabled=True,
        publish_enabled=False,
        package_name="cmp-android",
        required_secrets=frozenset(secrets),
    )


def test_resolve_returns_exactly_required_keys() -> None:
    store = MappingSecretStore({"a": "1", "b": "2", "unrelated": "x"})

    result = resolve(_job("a", "b"), store)

    assert isinstance(result, Ok)
    assert dict(result.value) == {"a": "1", "b": "2"}
    assert result.value.platform_id == "android"


def test_resolve_reports_every_missing_key_sorted() -> None:
    store = MappingSecretStore({"b": "2"})

    result = resolve(_job("c", "a", "b"), store)

    assert isinstance(result, Err)
    assert result.error.platform_id == "android"
    assert result.error.missing == ("a", "c")
    assert "a, c" in result.error.message


def test_blank_value_counts_as_missing() -> None:
    store = MappingSecretStore({"a": "  "})
    assert missing_secrets(_job("a"), store) == ("a",)


def test_no_required_secrets_resolves_empty_bundle() -> None:
    result = resolve(_job(), MappingSecretStore({}))
    assert isinstance(result, Ok)
    assert len(result.value) == 0


def test_resolve_is_pure() -> None:
    store = MappingSecretStore({"a": "1"})
    job = _job("a")
    first = resolve(job, store)
    second = resolve(job, store)
    assert isinstance(first, Ok) and isinstance(second, Ok)
    assert dict(first.value) == dict(second.value)


def test_env_store_uses_prefix_and_upper_case() -> None:
    store = EnvSecretStore({"CI_UPLOAD_KEYSTORE_FILE": "abc"}, prefix="CI_")
    assert store.env_name("upload_keystore_file") == "CI_UPLOAD_KEYSTORE_FILE"
    assert store.lookup("upload_keystore_file") == "abc"
    assert store.lookup("missing") is None


class TestSecretBundle:
    def test_repr_hides_values(self) -> None:
        bundle = SecretBundle("android", {"keystore_password": "hunter2"})
        assert "hunter2" not in repr(bundle)
        assert "keystore_password" in repr(bundle)

    def test_redact_longest_first(self) -> None:
        bundle = SecretBundle("android", {"short": "abc", "long": "abcdef"})
        assert bundle.redact("pw=abcdef and abc") == "pw=*** and ***"
