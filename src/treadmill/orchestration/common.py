"""Steps shared by the sync, pick and reset workflows."""

from __future__ import annotations

import logging
import re

from treadmill.errors import (
    CommandFailed,
    InvalidBranchShape,
    NotAVendorCommit,
    TrunkPullFailed,
)
from treadmill.orchestration.context import TreadmillContext

logger = logging.getLogger(__name__)


def working_branch(ctx: TreadmillContext) -> str:
    """Return the checked-out branch, refusing detached HEAD and trunk."""
    branch = ctx.git.current_branch()
    if branch is None:
        raise InvalidBranchShape("HEAD is detached; check out your treadmill branch")
    if branch == ctx.config.trunk:
        raise InvalidBranchShape(
            f"You are on '{branch}'. Run this from a separate treadmill branch, "
            f"never from {ctx.config.trunk} itself."
        )
    return branch


def matches_marker(subject: str, marker: str) -> bool:
    return re.match(re.escape(marker), subject) is not None


def validate_treadmill_shape(ctx: TreadmillContext) -> str:
    """Check HEAD is the treadmill commit sitting on a junk vendor commit.

    Returns:
        Full hash of the treadmill commit.

    Raises:
        InvalidBranchShape: HEAD or HEAD^ is not what sync expects. Never
            repaired automatically.
    """
    cfg = ctx.config
    git = ctx.git

    head_subject = git.commit_subject("HEAD")
    if not matches_marker(head_subject, cfg.treadmill_marker):
        raise InvalidBranchShape(
            f"HEAD commit is not a treadmill commit.\n"
            f"  expected subject: {cfg.treadmill_marker}...\n"
            f"  actual subject:   {head_subject}"
        )
    if not git.has_parent("HEAD"):
        raise InvalidBranchShape("Treadmill commit has no parent commit")

    parent_subject = git.commit_subject("HEAD^")
    if not matches_marker(parent_subject, cfg.vendor_marker):
        raise InvalidBranchShape(
            f"HEAD^ is not a vendor commit.\n"
            f"  expected subject: {cfg.vendor_marker}...\n"
            f"  actual subject:   {parent_subject}"
        )
    if not git.has_parent("HEAD^"):
        raise InvalidBranchShape("Vendor commit HEAD^ has no parent commit")
    try:
        ctx.classifier.looks_like_vendor_commit("HEAD^")
    except NotAVendorCommit as e:
        raise InvalidBranchShape(
            f"HEAD^ is titled like a vendor commit but its content is not.\n{e}"
        ) from e

    return git.rev_parse("HEAD")


def pull_trunk(ctx: TreadmillContext, branch: str) -> None:
    """Update trunk from upstream, leaving ``branch`` checked out.

    Raises:
        TrunkPullFailed: On any git error. Local trunk may need manual
            attention; the working branch itself is never touched.
    """
    cfg = ctx.config
    ctx.reporter.step(f"Pulling {cfg.trunk} from {cfg.upstream_remote}")
    try:
        ctx.git.checkout(cfg.trunk)
        ctx.git.git("pull", "--rebase", cfg.upstream_remote, cfg.trunk)
        ctx.git.checkout(branch)
    except CommandFailed as e:
        restored = ctx.git.probe("checkout", "-q", branch)
        hint = (
            ""
            if restored
            else (
                f"\n\nYou are probably still on {cfg.trunk}. Run "
                f"'git rebase --abort' if needed, then 'git checkout {branch}'."
            )
        )
        raise TrunkPullFailed(
            f"Could not pull {cfg.trunk} from {cfg.upstream_remote}: {e.message}{hint}"
        ) from e


def rebase_onto_trunk(ctx: TreadmillContext) -> bool:
    """Rebase the current branch onto trunk unless it already forks there.

    Returns:
        True if a rebase ran.
    """
    trunk = ctx.config.trunk
    fork_point = ctx.git.merge_base(trunk, "HEAD")
    trunk_tip = ctx.git.rev_parse(trunk)
    if fork_point == trunk_tip:
        logger.info("Branch already forks from %s tip %s", trunk, trunk_tip)
        ctx.reporter.step(f"Already based on current {trunk}, no rebase needed")
        return False

    ctx.reporter.step(f"Rebasing onto {trunk}")
    ctx.git.rebase(trunk)
    return True
