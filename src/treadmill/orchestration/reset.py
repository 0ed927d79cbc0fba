"""The reset workflow: start a fresh treadmill on top of trunk.

Used after the treadmill PR merges, when the working branch has been brought
back to trunk. Leaves the branch in the shape sync requires::

    <trunk> -- vendor-in-X @ [none] -- treadmill commit (empty, dated)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from treadmill.config import TreadmillConfig
from treadmill.errors import InvalidBranchShape, TreadmillError
from treadmill.orchestration.common import (
    matches_marker,
    pull_trunk,
    rebase_onto_trunk,
    working_branch,
)
from treadmill.orchestration.context import TreadmillContext
from treadmill.orchestration.types import ResetRecord, SyncState

logger = logging.getLogger(__name__)

NO_VENDOR_VERSION = "[none]"


def treadmill_commit_message(config: TreadmillConfig, today: date) -> str:
    """Message for a fresh, empty treadmill commit."""
    return (
        f"{config.treadmill_marker}\n"
        "\n"
        f"Changes {config.project_name} needs to build and pass tests against "
        f"the latest {config.dependency_name} go here. Amend them into this "
        f"commit; each sync carries it forward onto the newest {config.trunk}.\n"
        "\n"
        f"Treadmill started {today.isoformat()}.\n"
    )


class ResetWorkflow:
    """Re-establishes the two marker commits sync depends on."""

    def __init__(
        self,
        ctx: TreadmillContext,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.ctx = ctx
        self._today = today

    def run(self, *, force_retry: bool = False) -> ResetRecord:
        ctx = self.ctx
        ctx.guard.validate(force_retry=force_retry)
        record = ResetRecord(branch=working_branch(ctx))
        try:
            record = self._validate(record)
            pull_trunk(ctx, record.branch)
            record = record.advance(SyncState.PULLED_TRUNK)

            with ctx.checkpoints.guard(record.branch):
                rebased = rebase_onto_trunk(ctx)
            state = SyncState.REBASED if rebased else SyncState.ALREADY_CURRENT
            record = record.advance(state, rebased=rebased)

            record = self._commit_markers(record)
        except TreadmillError as e:
            e.state = e.state or record.state.value
            raise

        record = record.advance(SyncState.DONE)
        ctx.reporter.success(
            f"Reset complete. Run a sync to vendor in the latest "
            f"{ctx.config.dependency_name}."
        )
        reminder = ctx.guard.orphan_reminder()
        if reminder:
            ctx.reporter.warning(reminder)
        return record

    def _validate(self, record: ResetRecord) -> ResetRecord:
        git = self.ctx.git
        trunk = self.ctx.config.trunk
        head = git.rev_parse("HEAD")
        trunk_tip = git.rev_parse(trunk)
        if head == trunk_tip:
            return record.advance(SyncState.VALIDATED)

        if self._is_fresh_reset(trunk_tip):
            self.ctx.reporter.step("Dropping the markers from a previous reset")
            with self.ctx.checkpoints.guard(record.branch):
                git.reset_hard(trunk_tip)
            return record.advance(SyncState.VALIDATED, dropped_previous_reset=True)

        raise InvalidBranchShape(
            f"'{record.branch}' must point exactly at {trunk} ({trunk_tip[:12]}) "
            f"to be reset, but it is at {head[:12]}. It may still carry local "
            "patches. Start from a fresh branch instead:\n"
            f"  git checkout -b <new-branch> {trunk}"
        )

    def _is_fresh_reset(self, trunk_tip: str) -> bool:
        """True if HEAD is exactly the two empty commits a reset creates."""
        cfg = self.ctx.config
        git = self.ctx.git
        if not (git.has_parent("HEAD") and git.has_parent("HEAD^")):
            return False
        if git.rev_parse("HEAD~2") != trunk_tip:
            return False
        if not matches_marker(git.commit_subject("HEAD"), cfg.treadmill_marker):
            return False
        if git.commit_subject("HEAD^") != cfg.vendor_commit_message(NO_VENDOR_VERSION):
            return False
        return not git.changed_files("HEAD~2", "HEAD")

    def _commit_markers(self, record: ResetRecord) -> ResetRecord:
        cfg = self.ctx.config
        git = self.ctx.git
        placeholder = cfg.vendor_commit_message(NO_VENDOR_VERSION)
        self.ctx.reporter.step(f"Committing: {placeholder}")
        git.commit(placeholder)
        self.ctx.reporter.step("Creating a fresh treadmill commit")
        git.commit(treadmill_commit_message(cfg, self._today()))
        return record.advance(SyncState.COMMITTED)
