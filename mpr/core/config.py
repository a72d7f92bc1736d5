"""Typed configuration loading.

`mpr.toml` provides defaults for every trigger input plus settings the
trigger does not carry (timeouts, Firebase app ids, publish commands).
Command line options override the file.

Example:
    [release]
    release_type = "beta"
    target_branch = "dev"

    [platforms.android]
    package = "cmp-android"
    publish = true

    [timeouts]
    build = 3600
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from mpr.platform.detection import Platform, detect_platform

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_number,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "AndroidConfig",
    "Config",
    "ConfigError",
    "DEFAULT_CONFIG_FILENAME",
    "DesktopConfig",
    "IosConfig",
    "ReleaseConfig",
    "SecretsConfig",
    "StageTimeouts",
    "WebConfig",
    "host_desktop_targets",
    "load_config",
    "load_config_or_default",
]

DEFAULT_CONFIG_FILENAME = "mpr.toml"

_RELEASE_TYPES = ("internal", "beta")
_DESKTOP_TARGETS = ("linux", "macos", "windows")


def host_desktop_targets() -> tuple[str, ...]:
    """Desktop targets buildable here: only the host OS's own installers."""
    host = detect_platform()
    return () if host == Platform.UNKNOWN else (str(host),)


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None

    @property
    def hint(self) -> str | None:
        return str(self.path) if self.path is not None else None


@dataclass(frozen=True, slots=True)
class StageTimeouts:
    """Per-stage timeouts in seconds (None disables the timeout)."""

    build: float | None = 60 * 60.0
    sign: float | None = 20 * 60.0
    package: float | None = 30 * 60.0
    publish: float | None = 30 * 60.0

    def for_stage(self, name: str) -> float | None:
        match name:
            case "building":
                return self.build
            case "signing":
                return self.sign
            case "packaging":
                return self.package
            case "publishing":
                return self.publish
            case _:
                return None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    release_type: str = "internal"
    target_branch: str = "dev"
    # gh expands {owner}/{repo} from the current checkout.
    repository: str = "{owner}/{repo}"
    out_dir: str = "build/mpr"
    version_file: str = "version.txt"
    version_task: str | None = "versionFile"
    changelog: str = "github"
    max_workers: int | None = None


@dataclass(frozen=True, slots=True)
class SecretsConfig:
    """Secrets are read from the environment as PREFIX + KEY.upper()."""

    env_prefix: str = ""


@dataclass(frozen=True, slots=True)
class AndroidConfig:
    package: str | None = None
    publish: bool = False
    firebase_app_id: str | None = None
    application_id: str | None = None


@dataclass(frozen=True, slots=True)
class IosConfig:
    package: str | None = None
    build: bool = False
    publish: bool = False
    firebase_app_id: str | None = None
    scheme: str | None = None
    workspace: str | None = None


@dataclass(frozen=True, slots=True)
class DesktopConfig:
    package: str | None = None
    targets: tuple[str, ...] = field(default_factory=host_desktop_targets)
    publish_command: tuple[str, ...] | None = None


@dataclass(frozen=True, slots=True)
class WebConfig:
    package: str | None = None
    publish: bool = True
    dist_dir: str | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    secrets: SecretsConfig = field(default_factory=SecretsConfig)
    timeouts: StageTimeouts = field(default_factory=StageTimeouts)
    android: AndroidConfig = field(default_factory=AndroidConfig)
    ios: IosConfig = field(default_factory=IosConfig)
    desktop: DesktopConfig = field(default_factory=DesktopConfig)
    web: WebConfig = field(default_factory=WebConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: On values outside their allowed set.
        """
        release: StrDict = get_table(data, "release") or {}
        secrets: StrDict = get_table(data, "secrets") or {}
        timeouts: StrDict = get_table(data, "timeouts") or {}
        platforms: StrDict = get_table(data, "platforms") or {}
        android: StrDict = get_table(platforms, "android") or {}
        ios: StrDict = get_table(platforms, "ios") or {}
        desktop: StrDict = get_table(platforms, "desktop") or {}
        web: StrDict = get_table(platforms, "web") or {}

        release_type = get_str(release, "release_type") or "internal"
        if release_type not in _RELEASE_TYPES:
            raise ValueError(f"release.release_type must be one of {_RELEASE_TYPES}")

        changelog = get_str(release, "changelog") or "github"
        if changelog not in ("github", "git"):
            raise ValueError("release.changelog must be 'github' or 'git'")

        targets = get_str_list(desktop, "targets")
        if targets is not None:
            unknown = [t for t in targets if t not in _DESKTOP_TARGETS]
            if unknown:
                raise ValueError(f"unknown desktop targets: {', '.join(unknown)}")

        max_workers = get_number(release, "max_workers")
        if max_workers is not None and max_workers < 1:
            raise ValueError("release.max_workers must be >= 1")

        defaults = StageTimeouts()
        return cls(
            release=ReleaseConfig(
                release_type=release_type,
                target_branch=get_str(release, "target_branch") or "dev",
                repository=get_str(release, "repository") or "{owner}/{repo}",
                out_dir=get_str(release, "out_dir") or "build/mpr",
                version_file=get_str(release, "version_file") or "version.txt",
                version_task=(
                    get_str(release, "version_task")
                    if "version_task" in release
                    else "versionFile"
                ),
                changelog=changelog,
                max_workers=int(max_workers) if max_workers is not None else None,
            ),
            secrets=SecretsConfig(env_prefix=get_str(secrets, "env_prefix") or ""),
            timeouts=StageTimeouts(
                build=_timeout(timeouts, "build", defaults.build),
                sign=_timeout(timeouts, "sign", defaults.sign),
                package=_timeout(timeouts, "package", defaults.package),
                publish=_timeout(timeouts, "publish", defaults.publish),
            ),
            android=AndroidConfig(
                package=get_str(android, "package"),
                publish=get_bool(android, "publish") or False,
                firebase_app_id=get_str(android, "firebase_app_id"),
                application_id=get_str(android, "application_id"),
            ),
            ios=IosConfig(
                package=get_str(ios, "package"),
                build=get_bool(ios, "build") or False,
                publish=get_bool(ios, "publish") or False,
                firebase_app_id=get_str(ios, "firebase_app_id"),
                scheme=get_str(ios, "scheme"),
                workspace=get_str(ios, "workspace"),
            ),
            desktop=DesktopConfig(
                package=get_str(desktop, "package"),
                targets=targets if targets is not None else host_desktop_targets(),
                publish_command=get_str_list(desktop, "publish_command") or None,
            ),
            web=WebConfig(
                package=get_str(web, "package"),
                publish=_bool_or(web, "publish", True),
                dist_dir=get_str(web, "dist_dir"),
            ),
        )


def _bool_or(table: Mapping[str, object], key: str, default: bool) -> bool:
    value = get_bool(table, key)
    return default if value is None else value


def _timeout(table: Mapping[str, object], key: str, default: float | None) -> float | None:
    # 0 disables the timeout for that stage.
    value = get_number(table, key)
    if value is None:
        return default
    if value < 0:
        raise ValueError(f"timeouts.{key} must be >= 0")
    return value or None


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling import and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to mpr.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Like load_config, but a missing file yields the default Config.

    A file that exists but is invalid is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
