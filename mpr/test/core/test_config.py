"""Tests for mpr.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from mpr.core.config import (
    Config,
    ReleaseConfig,
    StageTimeouts,
    load_config,
    load_config_or_default,
)
from mpr.core.result import Err, Ok
from mpr.platform.detection import Platform


class TestDefaults:
    def test_release_defaults(self) -> None:
        release = ReleaseConfig()
        assert release.release_type == "internal"
        assert release.target_branch == "dev"
        assert release.repository == "{owner}/{repo}"
        assert release.changelog == "github"

    @pytest.mark.parametrize(
        ("host", "targets"),
        [
            (Platform.LINUX, ("linux",)),
            (Platform.MACOS, ("macos",)),
            (Platform.WINDOWS, ("windows",)),
            (Platform.UNKNOWN, ()),
        ],
    )
    def test_desktop_targets_default_to_the_host(
        self, monkeypatch: pytest.MonkeyPatch, host: Platform, targets: tuple[str, ...]
    ) -> None:
        monkeypatch.setattr("mpr.core.config.detect_platform", lambda: host)

        assert Config().desktop.targets == targets
        assert Config.from_dict({}).desktop.targets == targets

    def test_web_publishes_by_default(self) -> None:
        assert Config().web.publish is True

    def test_frozen(self) -> None:
        config = Config()
        with pytest.raises(AttributeError):
            config.release = ReleaseConfig()  # type: ignore[misc]


class TestStageTimeouts:
    def test_for_stage(self) -> None:
        timeouts = StageTimeouts(build=10.0, sign=20.0, package=30.0, publish=None)
        assert timeouts.for_stage("building") == 10.0
        assert timeouts.for_stage("signing") == 20.0
        assert timeouts.for_stage("packaging") == 30.0
        assert timeouts.for_stage("publishing") is None

    def test_unknown_stage_has_no_timeout(self) -> None:
        assert StageTimeouts().for_stage("resolving") is None


class TestFromDict:
    def test_empty(self) -> None:
        assert Config.from_dict({}) == Config()

    def test_full(self) -> None:
        config = Config.from_dict(
            {
                "release": {
                    "release_type": "beta",
                    "target_branch": "main",
                    "changelog": "git",
                    "max_workers": 2,
                },
                "secrets": {"env_prefix": "MPR_"},
                "timeouts": {"build": 120, "sign": 0},
                "platforms": {
                    "android": {"package": "cmp-android", "publish": True},
                    "ios": {"package": "cmp-ios", "build": True, "firebase_app_id": "1:2:ios"},
                    "desktop": {
                        "package": "cmp-desktop",
                        "targets": ["linux"],
                        "publish_command": ["./publish.sh", "--all"],
                    },
                    "web": {"package": "cmp-web", "publish": False},
                },
            }
        )

        assert config.release.release_type == "beta"
        assert config.release.target_branch == "main"
        assert config.release.changelog == "git"
        assert config.release.max_workers == 2
        assert config.secrets.env_prefix == "MPR_"
        assert config.timeouts.build == 120.0
        assert config.timeouts.sign is None
        assert config.timeouts.package == StageTimeouts().package
        assert config.android.package == "cmp-android"
        assert config.android.publish is True
        assert config.ios.build is True
        assert config.ios.firebase_app_id == "1:2:ios"
        assert config.desktop.targets == ("linux",)
        assert config.desktop.publish_command == ("./publish.sh", "--all")
        assert config.web.publish is False

    def test_version_task_can_be_disabled(self) -> None:
        config = Config.from_dict({"release": {"version_task": ""}})
        assert config.release.version_task is None

    @pytest.mark.parametrize(
        "data",
        [
            {"release": {"release_type": "stable"}},
            {"release": {"changelog": "jira"}},
            {"release": {"max_workers": 0}},
            {"timeouts": {"build": -1}},
            {"platforms": {"desktop": {"targets": ["beos"]}}},
        ],
    )
    def test_invalid_values(self, data: dict[str, object]) -> None:
        with pytest.raises(ValueError):
            Config.from_dict(data)


class TestLoadConfig:
    def test_load_valid(self, tmp_path: Path) -> None:
        path = tmp_path / "mpr.toml"
        path.write_text(
            '[release]\nrelease_type = "beta"\n\n[platforms.android]\npackage = "app"\n',
            encoding="utf-8",
        )

        result = load_config(path)

        assert isinstance(result, Ok)
        assert result.value.release.release_type == "beta"
        assert result.value.android.package == "app"

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "missing.toml")
        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "mpr.toml"
        path.write_text("[release\n", encoding="utf-8")

        result = load_config(path)

        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message
        assert result.error.hint == str(path)

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "mpr.toml"
        path.write_text('[release]\nrelease_type = "nightly"\n', encoding="utf-8")

        result = load_config(path)

        assert isinstance(result, Err)
        assert "Invalid config" in result.error.message

    def test_or_default_missing_file(self, tmp_path: Path) -> None:
        result = load_config_or_default(tmp_path / "mpr.toml")
        assert result == Ok(Config())

    def test_or_default_invalid_file_is_error(self, tmp_path: Path) -> None:
        path = tmp_path / "mpr.toml"
        path.write_text("not toml at all = = =", encoding="utf-8")
        assert isinstance(load_config_or_default(path), Err)
