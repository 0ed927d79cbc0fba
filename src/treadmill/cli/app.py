"""CLI orchestration and command routing."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from treadmill.cli.parser import PICK_AUTO, parse_args
from treadmill.config import DOCS_URL, TreadmillConfig
from treadmill.errors import TreadmillError
from treadmill.orchestration import (
    PickWorkflow,
    ResetWorkflow,
    SyncWorkflow,
    TreadmillContext,
)
from treadmill.reporting import Reporter

logger = logging.getLogger(__name__)


def cmd_sync(ctx: TreadmillContext, args: argparse.Namespace) -> int:
    SyncWorkflow(ctx).run(
        force_retry=args.force_retry,
        force_testing=args.force_testing,
    )
    return 0


def cmd_pick(ctx: TreadmillContext, args: argparse.Namespace) -> int:
    pr_number = None if args.pick == PICK_AUTO else int(args.pick)
    PickWorkflow(ctx).run(
        pr_number,
        force_old_main=args.force_old_main,
        force_retry=args.force_retry,
    )
    return 0


def cmd_reset(ctx: TreadmillContext, args: argparse.Namespace) -> int:
    ResetWorkflow(ctx).run(force_retry=args.force_retry)
    return 0


COMMAND_HANDLERS: dict[str, Callable[[TreadmillContext, argparse.Namespace], int]] = {
    "sync": cmd_sync,
    "pick": cmd_pick,
    "reset": cmd_reset,
}


def dispatch(
    args: argparse.Namespace,
    *,
    reporter: Reporter | None = None,
    context_factory: Callable[..., TreadmillContext] = TreadmillContext.create,
) -> int:
    """Build the context, run the selected workflow, report fatal errors."""
    repo_root = (args.workdir or Path.cwd()).resolve()
    reporter = reporter or Reporter(verbose=args.verbose, docs_url=DOCS_URL)

    try:
        config = TreadmillConfig.load(repo_root, args.config)
        reporter.docs_url = config.docs_url
        ctx = context_factory(repo_root, config, reporter, dry_run=args.dry_run)
        return COMMAND_HANDLERS[args.mode](ctx, args)
    except TreadmillError as e:
        logger.error("%s failed in state %s: %s", args.mode, e.state, e.message)
        reporter.error(e.message, state=e.state)
        return 1


def run(
    argv: Sequence[str] | None = None,
    *,
    configure_logging: Callable[[argparse.Namespace], None] | None = None,
) -> int:
    """Parse args, apply shared CLI setup, and execute command."""
    args = parse_args(argv)

    if configure_logging is not None:
        configure_logging(args)

    logger.info("Running %s in %s", args.mode, args.workdir or Path.cwd())
    return dispatch(args)
