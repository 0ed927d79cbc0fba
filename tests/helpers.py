"""Shared helpers for building throwaway git repositories in tests."""

from __future__ import annotations

import io
import subprocess
import sys
from pathlib import Path

from rich.console import Console

from treadmill.config import TreadmillConfig, VerifyStep
from treadmill.orchestration import TreadmillContext
from treadmill.reporting import Reporter

GO_MOD = """\
module github.com/containers/podman/v5

go 1.22

require (
\tgithub.com/containers/buildah {version}
\tgithub.com/containers/common v0.60.0
)
"""

TREADMILL_MESSAGE = """\
DO NOT MERGE: buildah vendor treadmill

Fixes podman needs for the latest buildah.
"""


def git(cwd: Path, *args: str) -> str:
    """Run git in cwd, failing the test on error."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def commit_all(repo: Path, message: str) -> str:
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "--allow-empty", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def write(repo: Path, relpath: str, content: str) -> None:
    path = repo / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def init_podman_repo(path: Path, version: str = "v1.2.0") -> Path:
    """Create a minimal repo shaped like podman with buildah vendored."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q", "-b", "main")
    git(path, "config", "commit.gpgsign", "false")
    write(path, "README.md", "podman\n")
    write(path, "go.mod", GO_MOD.format(version=version))
    write(path, "go.sum", f"github.com/containers/buildah {version} h1:abc=\n")
    write(
        path,
        "vendor/modules.txt",
        f"# github.com/containers/buildah {version}\n",
    )
    write(
        path,
        "vendor/github.com/containers/buildah/buildah.go",
        f"package buildah // {version}\n",
    )
    write(path, ".cirrus.yml", "env: {}\n")
    commit_all(path, "Initial commit")
    return path


def bump_vendor(repo: Path, version: str, *, subtree: bool = True) -> None:
    """Rewrite manifest, lock and index as a vendoring tool would."""
    write(repo, "go.mod", GO_MOD.format(version=version))
    write(repo, "go.sum", f"github.com/containers/buildah {version} h1:xyz=\n")
    write(repo, "vendor/modules.txt", f"# github.com/containers/buildah {version}\n")
    if subtree:
        write(
            repo,
            "vendor/github.com/containers/buildah/buildah.go",
            f"package buildah // {version}\n",
        )


VENDOR_SCRIPT = """\
import pathlib
import sys

version = sys.argv[1]
root = pathlib.Path.cwd()
gomod = root / "go.mod"
lines = []
for line in gomod.read_text().splitlines():
    if line.strip().startswith("github.com/containers/buildah "):
        line = "\\tgithub.com/containers/buildah " + version
    lines.append(line)
gomod.write_text("\\n".join(lines) + "\\n")
(root / "go.sum").write_text("github.com/containers/buildah " + version + " h1:new=\\n")
(root / "vendor/modules.txt").write_text("# github.com/containers/buildah " + version + "\\n")
(root / "vendor/github.com/containers/buildah/new.go").write_text("package buildah\\n")
"""


def write_vendor_script(directory: Path) -> Path:
    script = directory / "fake_vendor.py"
    script.write_text(VENDOR_SCRIPT)
    return script


def make_config(
    vendor_script: Path | None = None,
    *,
    version: str = "v1.3.0",
    vendor_exit: int | None = None,
    verify_exit: int = 0,
) -> TreadmillConfig:
    if vendor_exit is not None:
        vendor_commands = [[sys.executable, "-c", f"import sys; sys.exit({vendor_exit})"]]
    else:
        assert vendor_script is not None
        vendor_commands = [[sys.executable, str(vendor_script), version]]
    return TreadmillConfig(
        vendor_commands=vendor_commands,
        verify_steps=[
            VerifyStep(
                name="build",
                command=[sys.executable, "-c", f"import sys; sys.exit({verify_exit})"],
                remediation="Fix the build.",
            )
        ],
    )


class CapturedReporter(Reporter):
    """Reporter writing to in-memory buffers."""

    def __init__(self, *, verbose: bool = False) -> None:
        self.out = io.StringIO()
        self.err = io.StringIO()
        super().__init__(
            console=Console(file=self.out, width=500, highlight=False),
            err_console=Console(file=self.err, width=500, highlight=False),
            verbose=verbose,
        )

    @property
    def stdout(self) -> str:
        return self.out.getvalue()

    @property
    def stderr(self) -> str:
        return self.err.getvalue()


def make_context(
    repo: Path,
    config: TreadmillConfig,
    reporter: Reporter,
    *,
    dry_run: bool = False,
) -> TreadmillContext:
    return TreadmillContext.create(repo, config, reporter, dry_run=dry_run)


def checkpoint_branches(repo: Path) -> list[str]:
    out = git(repo, "branch", "--list", "__treadmill-checkpoint/*", "--format=%(refname:short)")
    return [line for line in out.splitlines() if line]
