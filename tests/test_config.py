"""Tests for treadmill configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from treadmill.config import CONFIG_FILENAME, TreadmillConfig, VerifyStep
from treadmill.errors import ConfigError


class TestDefaults:
    """The built-in configuration describes podman's buildah treadmill."""

    def test_markers(self) -> None:
        config = TreadmillConfig()
        assert config.treadmill_marker == "DO NOT MERGE: buildah vendor treadmill"
        assert config.vendor_commit_message("v1.3.0") == (
            "DO NOT MERGE: vendor in buildah @ v1.3.0"
        )

    def test_vendor_subtree(self) -> None:
        assert TreadmillConfig().vendor_subtree == "vendor/github.com/containers/buildah"

    def test_default_verify_steps(self) -> None:
        names = [step.name for step in TreadmillConfig().verify_steps]
        assert names == ["build", "man pages", "buildah-bud patches"]

    def test_defaults_are_not_shared(self) -> None:
        first = TreadmillConfig()
        first.vendor_commands.append(["true"])
        assert ["true"] not in TreadmillConfig().vendor_commands

    def test_github_token_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        config = TreadmillConfig()
        assert config.github_token() is None
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        assert config.github_token() == "secret"


class TestLoad:
    """Tests for TreadmillConfig.load."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert TreadmillConfig.load(tmp_path) == TreadmillConfig()

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert TreadmillConfig.load(tmp_path) == TreadmillConfig()

    def test_overrides(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(
            "trunk: master\n"
            "upstream_remote: origin\n"
            "vendor_commands:\n"
            "  - make vendor\n"
            "  - [go, mod, tidy]\n"
            "verify_steps:\n"
            "  - name: unit\n"
            "    command: [make, test]\n"
            "    remediation: Fix the tests.\n"
        )

        config = TreadmillConfig.load(tmp_path)

        assert config.trunk == "master"
        assert config.upstream_remote == "origin"
        assert config.vendor_commands == [["make", "vendor"], ["go", "mod", "tidy"]]
        assert config.verify_steps == [
            VerifyStep(name="unit", command=["make", "test"], remediation="Fix the tests.")
        ]
        assert config.dependency_name == "buildah"

    def test_explicit_path(self, tmp_path: Path) -> None:
        explicit = tmp_path / "elsewhere.yaml"
        explicit.write_text("dependency_name: skopeo\n")

        config = TreadmillConfig.load(tmp_path / "repo", explicit)

        assert config.treadmill_marker == "DO NOT MERGE: skopeo vendor treadmill"

    def test_explicit_path_must_exist(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read config"):
            TreadmillConfig.load(tmp_path, tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("trunk: [unclosed\n")
        with pytest.raises(ConfigError):
            TreadmillConfig.load(tmp_path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- main\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            TreadmillConfig.load(tmp_path)


class TestFromDict:
    """Validation of individual fields."""

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigError, match="Unknown config key"):
            TreadmillConfig.from_dict({"trunkk": "main"})

    def test_empty_string(self) -> None:
        with pytest.raises(ConfigError, match="trunk must be a non-empty string"):
            TreadmillConfig.from_dict({"trunk": ""})

    def test_empty_vendor_commands(self) -> None:
        with pytest.raises(ConfigError, match="vendor_commands"):
            TreadmillConfig.from_dict({"vendor_commands": []})

    def test_bad_command_type(self) -> None:
        with pytest.raises(ConfigError, match="command must be"):
            TreadmillConfig.from_dict({"vendor_commands": [["make", 3]]})

    def test_verify_step_without_name(self) -> None:
        with pytest.raises(ConfigError, match="non-empty 'name'"):
            TreadmillConfig.from_dict({"verify_steps": [{"command": "make"}]})

    def test_empty_verify_steps_allowed(self) -> None:
        assert TreadmillConfig.from_dict({"verify_steps": []}).verify_steps == []
