"""Safety branches around history rewrites.

A checkpoint is a plain branch named ``<prefix>/YYYYMMDD-HHMMSS`` pointing at
the working branch's commit just before a rebase or cherry-pick. On success
it is deleted. On failure it is kept, the recovery recipe is printed, and the
run aborts. The naming scheme is the recovery record and must not change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

from treadmill.config import TreadmillConfig
from treadmill.errors import TreadmillError
from treadmill.git.service import GitService
from treadmill.reporting import Reporter

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


@dataclass(frozen=True, slots=True)
class Checkpoint:
    """Handle for one live checkpoint branch."""

    name: str
    branch: str
    commit: str


class CheckpointManager:
    """Creates checkpoints and guards the regions they protect."""

    def __init__(
        self,
        git: GitService,
        config: TreadmillConfig,
        reporter: Reporter | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.git = git
        self.config = config
        self.reporter = reporter
        self._clock = clock
        self.live: list[Checkpoint] = []

    def _next_name(self) -> str:
        stamp = self._clock()
        while True:
            name = f"{self.config.checkpoint_prefix}/{stamp.strftime(TIMESTAMP_FORMAT)}"
            if name not in {cp.name for cp in self.live} and not self.git.branch_exists(
                name
            ):
                return name
            stamp += timedelta(seconds=1)

    def create(self, branch: str) -> Checkpoint:
        """Snapshot ``branch`` into a new checkpoint branch."""
        commit = self.git.rev_parse(branch)
        name = self._next_name()
        self.git.create_branch(name, commit)
        checkpoint = Checkpoint(name=name, branch=branch, commit=commit)
        self.live.append(checkpoint)
        logger.info("Created checkpoint %s at %s", name, commit)
        return checkpoint

    def discard(self, checkpoint: Checkpoint) -> None:
        """Delete a checkpoint whose protected work has fully succeeded."""
        self.git.delete_branch(checkpoint.name)
        if checkpoint in self.live:
            self.live.remove(checkpoint)
        logger.info("Deleted checkpoint %s", checkpoint.name)

    def recovery_recipe(self, checkpoint: Checkpoint) -> str:
        trunk = self.config.trunk
        return (
            f"Your '{checkpoint.branch}' branch was saved as {checkpoint.name} "
            f"({checkpoint.commit[:12]}) before this step.\n"
            "If a rebase or cherry-pick is still in progress, abort it first "
            "(git rebase --abort / git cherry-pick --abort). Then restore "
            "the branch with:\n"
            "\n"
            f"    git checkout {trunk}\n"
            f"    git branch -f {checkpoint.branch} {checkpoint.name}\n"
            "\n"
            "Once the branch looks right, switch back to it and delete the "
            "checkpoint:\n"
            "\n"
            f"    git checkout {checkpoint.branch}\n"
            f"    git branch -D {checkpoint.name}"
        )

    @contextmanager
    def guard(self, branch: str, *, retain: bool = False) -> Iterator[Checkpoint]:
        """Protect a risky region with a checkpoint of ``branch``.

        Any exception inside the region leaves the checkpoint in place,
        emits the recovery recipe exactly once even across nested guards,
        and propagates. Failures that are not TreadmillError still get the
        recipe printed. Under dry-run no branch exists, so no recipe is
        printed.

        Args:
            branch: Branch about to be rewritten.
            retain: Keep the checkpoint after success; the caller discards
                it once a later region has also succeeded.
        """
        checkpoint = self.create(branch)
        try:
            yield checkpoint
        except BaseException as exc:
            self._emit_recovery(checkpoint, exc)
            raise
        if not retain:
            self.discard(checkpoint)

    def _emit_recovery(self, checkpoint: Checkpoint, exc: BaseException) -> None:
        if getattr(exc, "recovery_emitted", False):
            return
        if self.git.dry_run:
            logger.info("Dry run: checkpoint %s was never created", checkpoint.name)
            return
        recipe = self.recovery_recipe(checkpoint)
        logger.error("Guarded step failed, checkpoint %s kept", checkpoint.name)
        if self.reporter is not None:
            self.reporter.recovery(recipe)
        else:
            logger.error("%s", recipe)
        if isinstance(exc, TreadmillError):
            exc.recovery_hint = recipe
            exc.recovery_emitted = True
        else:
            exc.recovery_emitted = True  # type: ignore[attr-defined]
