"""The sync workflow: rebase the treadmill onto trunk and re-vendor.

Starting shape of the working branch::

    <trunk history> -- vendor-in-X @ old -- treadmill commit   (HEAD)

Ending shape::

    <new trunk> -- vendor-in-X @ new -- treadmill commit (cherry-picked)

Both rewrites run under checkpoint guards. The outer checkpoint (taken before
the hard reset) is kept until the cherry-pick has also succeeded, so the
pre-sync branch stays recoverable throughout.
"""

from __future__ import annotations

import logging

from treadmill.errors import CommandFailed, TreadmillError, VendorFailed
from treadmill.orchestration.common import (
    pull_trunk,
    rebase_onto_trunk,
    validate_treadmill_shape,
    working_branch,
)
from treadmill.orchestration.context import TreadmillContext
from treadmill.orchestration.types import SyncOutcome, SyncRecord, SyncState
from treadmill.orchestration.verify import run_verification
from treadmill.runtime import TimeoutDomain

logger = logging.getLogger(__name__)


def classify_outcome(record: SyncRecord) -> SyncOutcome:
    """Decide what a finished rebase-and-vendor actually changed."""
    if record.old_version != record.new_version:
        return SyncOutcome.DEPENDENCY_MOVED
    if record.rebased:
        return SyncOutcome.TRUNK_MOVED
    return SyncOutcome.NOTHING_CHANGED


class SyncWorkflow:
    """Runs one sync cycle against the checked-out treadmill branch."""

    def __init__(self, ctx: TreadmillContext) -> None:
        self.ctx = ctx

    def run(self, *, force_retry: bool = False, force_testing: bool = False) -> SyncRecord:
        """Run the whole sync; any TreadmillError is stamped with the last state."""
        ctx = self.ctx
        ctx.guard.validate(force_retry=force_retry)
        record = SyncRecord(branch=working_branch(ctx))
        try:
            treadmill_commit = validate_treadmill_shape(ctx)
            record = self._validate(record, treadmill_commit)
            record = self._pull_trunk(record)

            with ctx.checkpoints.guard(record.branch, retain=True) as outer:
                record = self._rebase(record)
                record = self._vendor(record)
                record = self._commit(record)

            with ctx.checkpoints.guard(record.branch):
                record = self._reapply(record, treadmill_commit)
            ctx.checkpoints.discard(outer)

            record = record.advance(record.state, outcome=classify_outcome(record))
            if self._report_outcome(record) or force_testing:
                run_verification(ctx)
                record = record.advance(SyncState.VERIFIED, verified=True)
        except TreadmillError as e:
            e.state = e.state or record.state.value
            raise

        record = record.advance(SyncState.DONE)
        self._finish(record)
        return record

    # -------- steps --------

    def _validate(self, record: SyncRecord, treadmill_commit: str) -> SyncRecord:
        old_version = self.ctx.classifier.current_dependency_version()
        logger.info(
            "Treadmill commit %s, %s at %s",
            treadmill_commit,
            self.ctx.config.dependency_name,
            old_version,
        )
        return record.advance(
            SyncState.VALIDATED,
            treadmill_commit=treadmill_commit,
            old_version=old_version,
        )

    def _pull_trunk(self, record: SyncRecord) -> SyncRecord:
        pull_trunk(self.ctx, record.branch)
        return record.advance(SyncState.PULLED_TRUNK)

    def _rebase(self, record: SyncRecord) -> SyncRecord:
        self.ctx.reporter.step("Setting aside the treadmill and old vendor commits")
        self.ctx.git.reset_hard("HEAD~2")
        rebased = rebase_onto_trunk(self.ctx)
        state = SyncState.REBASED if rebased else SyncState.ALREADY_CURRENT
        return record.advance(state, rebased=rebased)

    def _vendor(self, record: SyncRecord) -> SyncRecord:
        cfg = self.ctx.config
        self.ctx.reporter.step(f"Vendoring in the latest {cfg.dependency_name}")
        for command in cfg.vendor_commands:
            try:
                self.ctx.git.run(command, domain=TimeoutDomain.VENDOR, stream=True)
            except CommandFailed as e:
                raise VendorFailed(
                    f"Vendoring {cfg.dependency_name} failed: {e.message}"
                ) from e

        # Vendoring tools may leave brand-new files untracked.
        untracked = self.ctx.git.untracked_files(f"{cfg.vendor_dir}/")
        if untracked:
            logger.info("Staging %d new vendored file(s)", len(untracked))
            self.ctx.git.stage(*untracked)
        return record.advance(SyncState.VENDORED)

    def _commit(self, record: SyncRecord) -> SyncRecord:
        cfg = self.ctx.config
        new_version = self.ctx.classifier.current_dependency_version()
        message = cfg.vendor_commit_message(new_version)
        self.ctx.reporter.step(f"Committing: {message}")
        self.ctx.git.commit(message, all_tracked=True)
        return record.advance(SyncState.COMMITTED, new_version=new_version)

    def _reapply(self, record: SyncRecord, treadmill_commit: str) -> SyncRecord:
        self.ctx.reporter.step(f"Reapplying treadmill commit {treadmill_commit[:12]}")
        self.ctx.git.cherry_pick(treadmill_commit)
        return record.advance(SyncState.REAPPLIED)

    # -------- reporting --------

    def _report_outcome(self, record: SyncRecord) -> bool:
        """Tell the operator what changed. Returns True if worth verifying."""
        cfg = self.ctx.config
        dep = cfg.dependency_name
        project = cfg.project_name
        reporter = self.ctx.reporter

        if record.outcome is SyncOutcome.NOTHING_CHANGED:
            reporter.info(
                f"Nothing has changed: no new {project} commits, {dep} still "
                f"at {record.new_version}. Skipping verification "
                "(use --force-testing to run it anyway)."
            )
            return False
        if record.outcome is SyncOutcome.TRUNK_MOVED:
            reporter.info(
                f"{project.capitalize()} has moved, but {dep} hasn't "
                f"(still {record.new_version}). Testing anyway."
            )
            return True

        reporter.info(f"{dep} {record.old_version} -> {record.new_version}")
        if record.rebased:
            reporter.success(
                f"New {dep}, new {project}. Good candidate for pushing."
            )
        else:
            reporter.success(
                f"New {dep} on unchanged {project}. Good candidate for pushing."
            )
        return True

    def _finish(self, record: SyncRecord) -> None:
        reporter = self.ctx.reporter
        if record.verified:
            reporter.success(
                "Verification passed. Push when ready:\n"
                f"  git push --force-with-lease origin {record.branch}"
            )
        reminder = self.ctx.guard.orphan_reminder()
        if reminder:
            reporter.warning(reminder)
