"""Tests for CLI dispatch and exit codes."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest
from helpers import CapturedReporter, git, write_vendor_script

from treadmill.cli import dispatch, parse_args
from treadmill.main import main, setup_logging


def _write_config(path: Path, vendor_command: str) -> Path:
    path.write_text(
        "vendor_commands:\n"
        f"  - {vendor_command}\n"
        "verify_steps: []\n"
    )
    return path


def test_main_exits_nonzero_outside_a_repository(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path))
    not_a_repo = tmp_path / "plain"
    not_a_repo.mkdir()

    assert main(["--sync", "-w", str(not_a_repo)]) == 1
    assert "treadmill failed" in capsys.readouterr().err


def test_dispatch_reports_state_and_docs(
    treadmill_setup: tuple[Path, Path], tmp_path: Path
) -> None:
    _, work = treadmill_setup
    config = _write_config(tmp_path / "failing.yaml", '"false"')
    reporter = CapturedReporter()

    code = dispatch(
        parse_args(["--sync", "-w", str(work), "--config", str(config)]),
        reporter=reporter,
    )

    assert code == 1
    assert "Vendoring buildah failed" in reporter.stderr
    assert "Failed during: already_current" in reporter.stderr
    assert "Buildah-Vendor-Treadmill" in reporter.stderr
    assert "How to recover" in reporter.stderr


def test_dispatch_sync_succeeds(treadmill_setup: tuple[Path, Path], tmp_path: Path) -> None:
    _, work = treadmill_setup
    script = write_vendor_script(tmp_path)
    vendor = f'["{sys.executable}", "{script}", v1.3.0]'
    config = _write_config(tmp_path / "ok.yaml", vendor)
    reporter = CapturedReporter()

    code = dispatch(
        parse_args(["--sync", "-w", str(work), "--config", str(config)]),
        reporter=reporter,
    )

    assert code == 0
    assert git(work, "log", "-1", "--format=%s", "HEAD^") == (
        "DO NOT MERGE: vendor in buildah @ v1.3.0"
    )


def test_dispatch_rejects_bad_config(tmp_path: Path) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("no_such_key: 1\n")
    reporter = CapturedReporter()

    code = dispatch(
        parse_args(["--reset", "-w", str(tmp_path), "--config", str(config)]),
        reporter=reporter,
    )

    assert code == 1
    assert "Unknown config key" in reporter.stderr


def test_dry_run_flag_reaches_git(treadmill_setup: tuple[Path, Path], tmp_path: Path) -> None:
    _, work = treadmill_setup
    head = git(work, "rev-parse", "HEAD")
    config = _write_config(tmp_path / "dry.yaml", '"false"')
    reporter = CapturedReporter()

    code = dispatch(
        parse_args(["--sync", "--dry-run", "-w", str(work), "--config", str(config)]),
        reporter=reporter,
    )

    assert code == 0
    assert git(work, "rev-parse", "HEAD") == head
    assert "$ false (dry-run)" in reporter.stdout


def test_setup_logging_levels(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[int] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw["level"]))

    setup_logging(parse_args(["--sync"]))
    setup_logging(parse_args(["--sync", "--verbose"]))
    setup_logging(parse_args(["--sync", "--debug"]))
    monkeypatch.setenv("TREADMILL_LOG_LEVEL", "error")
    setup_logging(parse_args(["--sync"]))

    assert calls == [logging.WARNING, logging.INFO, logging.DEBUG, logging.ERROR]
