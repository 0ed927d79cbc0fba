"""The pick workflow: carry the treadmill PR's changes onto a vendor branch.

Used on a branch whose HEAD is a real vendor bump. The treadmill PR's top
commit holds the fixes the project needs for the new dependency; picking it
lets that branch pass CI before those fixes land upstream.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from treadmill.errors import CommandFailed, StaleTrunk, TreadmillError
from treadmill.github import UpstreamPRResolver
from treadmill.orchestration.common import working_branch
from treadmill.orchestration.context import TreadmillContext
from treadmill.orchestration.types import PickRecord, SyncState
from treadmill.orchestration.verify import run_verification

logger = logging.getLogger(__name__)

# Must not start with the treadmill marker.
PICK_SUBJECT_TEMPLATE = "DO NOT MERGE: {dependency} treadmill changes from #{pr}"


def picked_message(dependency: str, pr_number: int, original: str) -> str:
    """Rewrite a picked commit's message, keeping the original body."""
    subject = PICK_SUBJECT_TEMPLATE.format(dependency=dependency, pr=pr_number)
    body = "\n".join(original.splitlines()[1:]).strip()
    if not body:
        return subject
    return f"{subject}\n\n{body}"


class PickWorkflow:
    """Cherry-picks the treadmill PR onto the current vendor branch."""

    def __init__(
        self,
        ctx: TreadmillContext,
        *,
        resolver_factory: Callable[[], UpstreamPRResolver] | None = None,
    ) -> None:
        self.ctx = ctx
        self._resolver_factory = resolver_factory or (
            lambda: UpstreamPRResolver(ctx.config)
        )

    def run(
        self,
        pr_number: int | None = None,
        *,
        force_old_main: bool = False,
        force_retry: bool = False,
    ) -> PickRecord:
        ctx = self.ctx
        ctx.guard.validate(force_retry=force_retry)
        record = PickRecord(branch=working_branch(ctx))
        try:
            ctx.classifier.looks_like_vendor_commit("HEAD")
            number = pr_number if pr_number is not None else self._resolve()
            record = record.advance(SyncState.VALIDATED, pr_number=number)

            pr_branch = self._fetch(number)
            record = record.advance(record.state, pr_branch=pr_branch)
            try:
                self._check_fork_points(
                    record.branch, number, pr_branch, force_old_main=force_old_main
                )
                with ctx.checkpoints.guard(record.branch):
                    picked = self._pick(number, pr_branch)
                    record = record.advance(SyncState.REAPPLIED, picked_commit=picked)
            finally:
                self._delete_pr_branch(pr_branch)

            run_verification(ctx)
            record = record.advance(SyncState.VERIFIED, verified=True)
        except TreadmillError as e:
            e.state = e.state or record.state.value
            raise

        record = record.advance(SyncState.DONE)
        ctx.reporter.success(
            f"Picked treadmill PR #{record.pr_number} onto {record.branch} "
            "and verification passed."
        )
        reminder = ctx.guard.orphan_reminder()
        if reminder:
            ctx.reporter.warning(reminder)
        return record

    def _resolve(self) -> int:
        self.ctx.reporter.step("Looking up the treadmill pull request")
        with self._resolver_factory() as resolver:
            return resolver.find_treadmill_pr()

    def _fetch(self, pr_number: int) -> str:
        """Fetch the PR head into a local branch and refresh remote trunk."""
        cfg = self.ctx.config
        pr_branch = f"{cfg.pick_branch_prefix}/{pr_number}"
        self.ctx.reporter.step(f"Fetching PR #{pr_number} into {pr_branch}")
        remote, trunk = cfg.upstream_remote, cfg.trunk
        self.ctx.git.git(
            "fetch",
            "-q",
            remote,
            f"+pull/{pr_number}/head:{pr_branch}",
            f"+refs/heads/{trunk}:refs/remotes/{remote}/{trunk}",
        )
        return pr_branch

    def _not_fetched(self, pr_branch: str) -> bool:
        git = self.ctx.git
        return git.dry_run and not git.branch_exists(pr_branch)

    def _check_fork_points(
        self, branch: str, pr_number: int, pr_branch: str, *, force_old_main: bool
    ) -> None:
        """Refuse PRs that fork from a strictly newer trunk than our branch."""
        git = self.ctx.git
        cfg = self.ctx.config
        trunk = f"{cfg.upstream_remote}/{cfg.trunk}"
        if self._not_fetched(pr_branch):
            logger.info("Dry run: PR branch not fetched, skipping fork-point check")
            return

        ours = git.merge_base(trunk, "HEAD")
        theirs = git.merge_base(trunk, pr_branch)
        if ours == theirs or not git.is_ancestor(ours, theirs):
            return

        message = (
            f"PR #{pr_number} forks from a newer {trunk} ({theirs[:12]}) "
            f"than {branch} does ({ours[:12]}). Picking it could lose "
            f"upstream changes. Rebase {branch} onto {trunk} first, or "
            "rerun with --force-old-main."
        )
        if not force_old_main:
            self.ctx.reporter.warning(message)
            raise StaleTrunk(f"Aborted before touching any commits. {message}")
        self.ctx.reporter.warning(f"{message} Proceeding because of --force-old-main.")

    def _pick(self, pr_number: int, pr_branch: str) -> str | None:
        """Cherry-pick the PR's top commit and retitle it.

        Returns:
            The picked commit, or None under dry-run when the PR branch was
            never fetched.
        """
        git = self.ctx.git
        dependency = self.ctx.config.dependency_name
        if self._not_fetched(pr_branch):
            self.ctx.reporter.step(f"Cherry-picking the top commit of PR #{pr_number}")
            git.cherry_pick(pr_branch)
            git.amend_message(picked_message(dependency, pr_number, ""))
            return None

        picked = git.rev_parse(pr_branch)
        original = git.commit_message(picked)
        self.ctx.reporter.step(f"Cherry-picking {picked[:12]} from PR #{pr_number}")
        git.cherry_pick(picked)
        git.amend_message(picked_message(dependency, pr_number, original))
        return picked

    def _delete_pr_branch(self, pr_branch: str) -> None:
        try:
            self.ctx.git.delete_branch(pr_branch)
        except CommandFailed as e:
            logger.warning("Could not delete %s: %s", pr_branch, e)
            self.ctx.reporter.warning(
                f"Could not delete {pr_branch}; remove it with "
                f"'git branch -D {pr_branch}'"
            )
