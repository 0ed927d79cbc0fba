"""Decide whether a commit is a legitimate dependency vendor bump."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from treadmill.config import TreadmillConfig
from treadmill.errors import DependencyNotFound, NotAVendorCommit
from treadmill.git.service import GitService

logger = logging.getLogger(__name__)


class CommitClassifier:
    """Inspects commits and the manifest for the vendored dependency."""

    def __init__(self, git: GitService, config: TreadmillConfig) -> None:
        self.git = git
        self.config = config

    def looks_like_vendor_commit(self, ref: str) -> None:
        """Check that ``ref`` only bumps the vendored dependency.

        An empty diff, or one touching only the tooling config file, passes:
        that is the placeholder committed when nothing was re-vendored.
        Otherwise the manifest, lock file and vendor index must all change,
        as must either the dependency's vendor subtree or a manifest line
        naming the module. The last case covers dependencies whose changed
        files live outside the checked-in vendor tree.

        Raises:
            NotAVendorCommit: Listing every missing expectation at once.
        """
        cfg = self.config
        files = self.git.changed_files(f"{ref}^", ref)
        if not files or set(files) <= {cfg.tooling_config}:
            logger.debug("%s is an empty vendor placeholder", ref)
            return

        changed = set(files)
        missing: list[str] = []
        for required in (cfg.manifest_file, cfg.lock_file, cfg.vendor_index):
            if required not in changed:
                missing.append(required)

        subtree = f"{cfg.vendor_subtree}/"
        if not any(path.startswith(subtree) for path in files):
            manifest_diff = self.git.diff_lines(f"{ref}^", ref, cfg.manifest_file)
            if not _names_module(manifest_diff, cfg.dependency_module):
                missing.append(
                    f"{subtree} (or a {cfg.manifest_file} line naming "
                    f"{cfg.dependency_module})"
                )

        if missing:
            raise NotAVendorCommit(ref, missing)
        logger.debug("%s looks like a vendor commit", ref)

    def current_dependency_version(self, branch: str | None = None) -> str:
        """Return the dependency's version token from the manifest.

        Args:
            branch: Read the committed manifest from this branch. None reads
                the working tree.

        Raises:
            DependencyNotFound: No manifest line names the module.
        """
        cfg = self.config
        if branch is None:
            path = Path(self.git.working_dir) / cfg.manifest_file
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
            except OSError as e:
                raise DependencyNotFound(f"Cannot read {path}: {e}") from e
            where = cfg.manifest_file
        else:
            lines = self.git.show_file(branch, cfg.manifest_file)
            where = f"{branch}:{cfg.manifest_file}"

        version = find_module_version(lines, cfg.dependency_module)
        if version is None:
            raise DependencyNotFound(
                f"No line naming {cfg.dependency_module} in {where}"
            )
        return version


def find_module_version(lines: Iterable[str], module: str) -> str | None:
    """Version token from the first ``<module> <version>`` manifest line."""
    for line in lines:
        parts = line.split("//", 1)[0].split()
        if parts and parts[0] == "require":
            parts = parts[1:]
        if len(parts) >= 2 and parts[0] == module:
            return parts[1]
    return None


def _names_module(diff_lines: Iterable[str], module: str) -> bool:
    for line in diff_lines:
        if line.startswith(("+++", "---")):
            continue
        if line[:1] in ("+", "-") and module in line[1:].split():
            return True
    return False
