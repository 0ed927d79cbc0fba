"""External verification run after new commits are in place."""

from __future__ import annotations

import logging

from treadmill.errors import CommandFailed, VerificationFailed
from treadmill.orchestration.context import TreadmillContext
from treadmill.runtime import TimeoutDomain

logger = logging.getLogger(__name__)


def run_verification(ctx: TreadmillContext) -> None:
    """Run every configured verify step in order, stopping at the first failure.

    Failures never touch the repository: the commits already exist, only
    publishing them is blocked.

    Raises:
        VerificationFailed: With the step's remediation text.
    """
    steps = ctx.config.verify_steps
    if not steps:
        logger.info("No verify steps configured")
        return

    for step in steps:
        ctx.reporter.step(f"Verifying: {step.name}")
        try:
            ctx.git.run(step.command, domain=TimeoutDomain.VERIFICATION, stream=True)
        except CommandFailed as e:
            raise VerificationFailed(step.name, e.message, step.remediation) from e
        logger.info("Verify step %r passed", step.name)
