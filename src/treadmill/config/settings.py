"""Treadmill configuration.

Defaults describe podman's treadmill for github.com/containers/buildah.
A repository can override any field from ``.treadmill.yaml`` at its root:

    trunk: main
    upstream_remote: upstream
    vendor_commands:
      - [go, get, github.com/containers/buildah@main]
      - [make, vendor]
    verify_steps:
      - name: build
        command: [make, bin/podman]
        remediation: Fix the build before pushing.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from treadmill.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".treadmill.yaml"

DOCS_URL = "https://github.com/containers/podman/wiki/Buildah-Vendor-Treadmill"

DEFAULT_VENDOR_COMMANDS: list[list[str]] = [
    ["go", "get", "github.com/containers/buildah@main"],
    ["make", "vendor"],
]


@dataclass(frozen=True, slots=True)
class VerifyStep:
    """One external pass/fail check run after a successful sync or pick."""

    name: str
    command: list[str]
    remediation: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VerifyStep":
        name = data.get("name")
        command = data.get("command")
        if not isinstance(name, str) or not name:
            raise ConfigError("verify_steps entries need a non-empty 'name'")
        command_list = _as_command(command, f"verify step '{name}'")
        remediation = data.get("remediation", "")
        if not isinstance(remediation, str):
            raise ConfigError(f"verify step '{name}': remediation must be a string")
        return cls(name=name, command=command_list, remediation=remediation)


def _default_verify_steps() -> list[VerifyStep]:
    return [
        VerifyStep(
            name="build",
            command=["make", "bin/podman"],
            remediation=(
                "podman no longer builds against the new buildah. Fix the "
                "build and amend the treadmill commit (the topmost one)."
            ),
        ),
        VerifyStep(
            name="man pages",
            command=["hack/xref-helpmsgs-manpages"],
            remediation=(
                "buildah changed a podman CLI option without updating the "
                "man pages. Add the missing documentation to the treadmill "
                "commit."
            ),
        ),
        VerifyStep(
            name="buildah-bud patches",
            command=["test/buildah-bud/run-buildah-bud-tests", "--no-test"],
            remediation=(
                "test/buildah-bud/buildah-tests.diff no longer applies to "
                "the new buildah. Regenerate the diff and amend it into the "
                "treadmill commit."
            ),
        ),
    ]


@dataclass(slots=True)
class TreadmillConfig:
    """Names, paths and commands for one treadmill deployment."""

    # Branches and remotes
    trunk: str = "main"
    upstream_remote: str = "upstream"
    github_repo: str = "containers/podman"

    # Dependency being vendored
    project_name: str = "podman"
    dependency_name: str = "buildah"
    dependency_module: str = "github.com/containers/buildah"

    # Files a vendor commit touches
    manifest_file: str = "go.mod"
    lock_file: str = "go.sum"
    vendor_dir: str = "vendor"
    vendor_index: str = "vendor/modules.txt"
    tooling_config: str = ".cirrus.yml"

    # Branch naming; checkpoint names are the durable recovery record
    checkpoint_prefix: str = "__treadmill-checkpoint"
    pick_branch_prefix: str = "__treadmill-pr"

    # Upstream PR discovery
    pr_title: str = "DO NOT MERGE: buildah vendor treadmill"
    token_env: str = "GITHUB_TOKEN"
    github_api_url: str = "https://api.github.com"

    vendor_commands: list[list[str]] = field(
        default_factory=lambda: [list(cmd) for cmd in DEFAULT_VENDOR_COMMANDS]
    )
    verify_steps: list[VerifyStep] = field(default_factory=_default_verify_steps)
    docs_url: str = DOCS_URL

    @property
    def vendor_subtree(self) -> str:
        """Vendor directory for the dependency itself."""
        return f"{self.vendor_dir}/{self.dependency_module}"

    @property
    def treadmill_marker(self) -> str:
        """Subject prefix identifying the treadmill commit."""
        return f"DO NOT MERGE: {self.dependency_name} vendor treadmill"

    @property
    def vendor_marker(self) -> str:
        """Subject prefix identifying the junk vendor commit."""
        return f"DO NOT MERGE: vendor in {self.dependency_name} @ "

    def vendor_commit_message(self, version: str) -> str:
        return f"{self.vendor_marker}{version}"

    def github_token(self) -> str | None:
        return os.environ.get(self.token_env) or None

    @classmethod
    def load(
        cls, repo_root: Path, path: Path | None = None
    ) -> "TreadmillConfig":
        """Load config from an explicit file or ``.treadmill.yaml``.

        Args:
            repo_root: Repository root; searched for the default config file.
            path: Explicit config path. Must exist when given.

        Raises:
            ConfigError: If the file cannot be read or has invalid fields.
        """
        if path is None:
            candidate = repo_root / CONFIG_FILENAME
            if not candidate.exists():
                logger.debug("No %s in %s, using defaults", CONFIG_FILENAME, repo_root)
                return cls()
            path = candidate

        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e

        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ConfigError(f"Config {path} must contain a mapping")

        logger.debug("Loaded config from %s", path)
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TreadmillConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key == "vendor_commands":
                if not isinstance(value, list) or not value:
                    raise ConfigError("vendor_commands must be a non-empty list")
                kwargs[key] = [_as_command(cmd, "vendor_commands") for cmd in value]
            elif key == "verify_steps":
                if not isinstance(value, list) or not all(
                    isinstance(item, dict) for item in value
                ):
                    raise ConfigError("verify_steps must be a list of mappings")
                kwargs[key] = [VerifyStep.from_dict(item) for item in value]
            else:
                if not isinstance(value, str) or not value:
                    raise ConfigError(f"{key} must be a non-empty string")
                kwargs[key] = value
        return cls(**kwargs)


def _as_command(value: object, where: str) -> list[str]:
    """Accept a command as a list of strings or a whitespace-split string."""
    if isinstance(value, str) and value.strip():
        return value.split()
    if (
        isinstance(value, list)
        and value
        and all(isinstance(part, str) for part in value)
    ):
        return list(value)
    raise ConfigError(f"{where}: command must be a string or list of strings")
