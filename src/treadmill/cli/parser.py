"""Argument parser construction for the treadmill CLI."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import NoReturn

from treadmill import __version__

# Sentinel for a bare --pick: look the PR up on GitHub.
PICK_AUTO = "auto"


class TreadmillArgumentParser(argparse.ArgumentParser):
    """Argument parser whose usage errors exit 1 like every other failure."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _pr_number(value: str) -> str:
    if value == PICK_AUTO or (value.isdigit() and int(value) > 0):
        return value
    raise argparse.ArgumentTypeError(f"not a pull request number: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI parser."""
    parser = TreadmillArgumentParser(
        prog="treadmill",
        description=(
            "Keep a vendored dependency current on a long-lived treadmill "
            "branch, carrying one commit of local patches across syncs."
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--workdir",
        "-w",
        type=Path,
        help="Repository to operate on (default: current directory)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file (default: .treadmill.yaml in the repository)",
    )

    # Workflows
    modes = parser.add_mutually_exclusive_group(required=True)
    modes.add_argument(
        "--sync",
        action="store_true",
        help="Rebase onto trunk, re-vendor, and reapply the treadmill commit",
    )
    modes.add_argument(
        "--pick",
        nargs="?",
        const=PICK_AUTO,
        type=_pr_number,
        metavar="PR",
        help="Cherry-pick the treadmill PR (found on GitHub if PR is omitted)",
    )
    modes.add_argument(
        "--reset",
        action="store_true",
        help="Start a fresh treadmill on a branch that equals trunk",
    )

    # Overrides
    parser.add_argument(
        "--force-old-main",
        action="store_true",
        help="Pick even if the PR is based on a newer trunk than this branch",
    )
    parser.add_argument(
        "--force-retry",
        action="store_true",
        help="Proceed even though checkpoint branches from a failed run exist",
    )
    parser.add_argument(
        "--force-testing",
        action="store_true",
        help="Run verification even when nothing changed",
    )

    # Output
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show mutating commands instead of running them",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Echo every command before running it",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments from argv (or sys.argv when omitted)."""
    parser = build_parser()
    if argv is None:
        args = parser.parse_args()
    else:
        args = parser.parse_args(list(argv))
    args.mode = "sync" if args.sync else "reset" if args.reset else "pick"
    return args
