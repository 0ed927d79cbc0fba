"""State and result types for the treadmill workflows.

Workflows thread an immutable record through their steps. Each step takes the
record and returns ``record.advance(...)``; nothing is kept in ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class SyncState(str, Enum):
    """Milestones of a workflow run, in order."""

    START = "start"
    VALIDATED = "validated_preconditions"
    PULLED_TRUNK = "pulled_trunk"
    REBASED = "rebased"
    ALREADY_CURRENT = "already_current"
    VENDORED = "vendored"
    COMMITTED = "committed"
    REAPPLIED = "reapplied"
    VERIFIED = "verified"
    DONE = "done"


class SyncOutcome(str, Enum):
    """What a sync actually changed."""

    NOTHING_CHANGED = "nothing_changed"
    TRUNK_MOVED = "trunk_moved"
    DEPENDENCY_MOVED = "dependency_moved"


@dataclass(frozen=True, slots=True)
class SyncRecord:
    """Facts accumulated by a sync run."""

    branch: str
    state: SyncState = SyncState.START
    treadmill_commit: str | None = None
    old_version: str | None = None
    new_version: str | None = None
    rebased: bool = False
    outcome: SyncOutcome | None = None
    verified: bool = False

    def advance(self, state: SyncState, **changes: Any) -> "SyncRecord":
        return replace(self, state=state, **changes)


@dataclass(frozen=True, slots=True)
class PickRecord:
    """Facts accumulated by a pick run."""

    branch: str
    state: SyncState = SyncState.START
    pr_number: int | None = None
    pr_branch: str | None = None
    picked_commit: str | None = None
    verified: bool = False

    def advance(self, state: SyncState, **changes: Any) -> "PickRecord":
        return replace(self, state=state, **changes)


@dataclass(frozen=True, slots=True)
class ResetRecord:
    """Facts accumulated by a reset run."""

    branch: str
    state: SyncState = SyncState.START
    dropped_previous_reset: bool = False
    rebased: bool = False

    def advance(self, state: SyncState, **changes: Any) -> "ResetRecord":
        return replace(self, state=state, **changes)
