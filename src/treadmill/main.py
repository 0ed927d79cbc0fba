"""Main module for treadmill."""

import argparse
import logging
import os
import sys
from collections.abc import Sequence

from treadmill.cli import run


def setup_logging(args: argparse.Namespace) -> None:
    """Configure logging to stderr.

    Level comes from TREADMILL_LOG_LEVEL (default WARNING); --verbose
    raises it to INFO and --debug to DEBUG.
    """
    level_name = os.environ.get("TREADMILL_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    if args.verbose:
        level = min(level, logging.INFO)
    if args.debug:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.debug("Log level %s", logging.getLevelName(level))


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``treadmill`` console script."""
    return run(argv, configure_logging=setup_logging)


if __name__ == "__main__":
    sys.exit(main())
