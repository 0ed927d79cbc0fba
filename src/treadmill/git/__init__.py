"""Git integration for treadmill.

Key components:
- GitService: transcripted git/build command execution
- RepositoryGuard: preconditions before any mutation
- CommitClassifier: vendor commit validation and dependency version lookup
- CheckpointManager: safety branches around rebase and cherry-pick
"""
from __future__ import annotations

from treadmill.git.checkpoint import Checkpoint, CheckpointManager
from treadmill.git.classifier import CommitClassifier, find_module_version
from treadmill.git.guard import RepositoryGuard
from treadmill.git.service import GitService

__all__ = [
    "Checkpoint",
    "CheckpointManager",
    "CommitClassifier",
    "GitService",
    "RepositoryGuard",
    "find_module_version",
]
