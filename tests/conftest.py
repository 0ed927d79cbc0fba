from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from helpers import (
    TREADMILL_MESSAGE,
    CapturedReporter,
    git,
    init_podman_repo,
    write,
)


@pytest.fixture(autouse=True)
def isolate_git(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Keep tests away from the user's git config and identity."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Treadmill Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "treadmill@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Treadmill Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "treadmill@example.com")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("TREADMILL_LOG_LEVEL", raising=False)
    yield


@pytest.fixture
def reporter() -> CapturedReporter:
    return CapturedReporter()


@pytest.fixture
def podman_repo(tmp_path: Path) -> Path:
    return init_podman_repo(tmp_path / "podman")


@pytest.fixture
def treadmill_setup(tmp_path: Path) -> tuple[Path, Path]:
    """Upstream repo plus a clone on branch B in treadmill shape.

    Returns (upstream, work).
    """
    upstream = init_podman_repo(tmp_path / "upstream")
    work = tmp_path / "work"
    git(tmp_path, "clone", "-q", str(upstream), str(work))
    git(work, "config", "commit.gpgsign", "false")
    git(work, "remote", "add", "upstream", str(upstream))
    git(work, "checkout", "-q", "-b", "B")
    git(work, "commit", "-q", "--allow-empty", "-m", "DO NOT MERGE: vendor in buildah @ v1.2.0")
    write(work, "test/fix.txt", "treadmill fix\n")
    git(work, "add", "-A")
    git(work, "commit", "-q", "-m", TREADMILL_MESSAGE)
    return upstream, work
