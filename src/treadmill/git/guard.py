"""Precondition checks run before any workflow mutates the repository."""

from __future__ import annotations

import logging

from treadmill.config import TreadmillConfig
from treadmill.errors import DirtyRepository, OrphanedCheckpoint
from treadmill.git.service import GitService
from treadmill.reporting import Reporter

logger = logging.getLogger(__name__)


class RepositoryGuard:
    """Refuses to start a workflow on a repository with leftover state."""

    def __init__(
        self,
        git: GitService,
        config: TreadmillConfig,
        reporter: Reporter | None = None,
    ) -> None:
        self.git = git
        self.config = config
        self.reporter = reporter
        self.orphans: list[str] = []

    def assert_clean(self) -> None:
        """Fail if tracked files changed or vendor/ holds untracked files.

        Untracked files outside the vendor directory are tolerated.

        Raises:
            DirtyRepository: Listing every offending path.
        """
        dirty = [line[3:] for line in self.git.tracked_changes()]
        dirty.extend(
            f"{path} (untracked)"
            for path in self.git.untracked_files(f"{self.config.vendor_dir}/")
        )
        if dirty:
            raise DirtyRepository(dirty)

    def assert_no_orphaned_checkpoint(self, force: bool = False) -> list[str]:
        """Fail if checkpoint branches from an earlier run still exist.

        Args:
            force: Downgrade to a warning and remember the orphans so the
                final report can remind the operator.

        Raises:
            OrphanedCheckpoint: If orphans exist and force is False.
        """
        orphans = self.git.list_branches(f"{self.config.checkpoint_prefix}/*")
        if not orphans:
            return []
        if not force:
            raise OrphanedCheckpoint(orphans)

        self.orphans = orphans
        logger.warning("Proceeding despite orphaned checkpoints: %s", orphans)
        if self.reporter is not None:
            self.reporter.warning(
                "Proceeding despite leftover checkpoint branch(es): "
                + ", ".join(orphans)
            )
        return orphans

    def validate(self, *, force_retry: bool = False) -> None:
        """Run every precondition check."""
        self.assert_clean()
        self.assert_no_orphaned_checkpoint(force=force_retry)

    def orphan_reminder(self) -> str | None:
        """Text reminding the operator to delete forced-past orphans."""
        if not self.orphans:
            return None
        commands = "\n".join(f"  git branch -D {name}" for name in self.orphans)
        return (
            "Remember to delete the old checkpoint branch(es) once you no "
            f"longer need them:\n{commands}"
        )
