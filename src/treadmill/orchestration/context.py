"""Wiring shared by all workflows."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from treadmill.config import TreadmillConfig
from treadmill.git import CheckpointManager, CommitClassifier, GitService, RepositoryGuard
from treadmill.reporting import Reporter


@dataclass
class TreadmillContext:
    """Collaborators for one invocation against one repository."""

    config: TreadmillConfig
    git: GitService
    reporter: Reporter
    guard: RepositoryGuard
    classifier: CommitClassifier
    checkpoints: CheckpointManager

    @classmethod
    def create(
        cls,
        repo_root: Path,
        config: TreadmillConfig,
        reporter: Reporter,
        *,
        dry_run: bool = False,
        git: GitService | None = None,
    ) -> "TreadmillContext":
        git = git or GitService(repo_root, dry_run=dry_run, reporter=reporter)
        return cls(
            config=config,
            git=git,
            reporter=reporter,
            guard=RepositoryGuard(git, config, reporter),
            classifier=CommitClassifier(git, config),
            checkpoints=CheckpointManager(git, config, reporter),
        )
