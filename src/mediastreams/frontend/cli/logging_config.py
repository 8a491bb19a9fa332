"""Logging setup for the mediastreams command line."""

import logging
import sys

TERSE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    # Results (keys, hashes, sizes) go to stdout, so log records use stderr.
    # Timestamps and logger names only show up at DEBUG (-v).
    verbose = level <= logging.DEBUG
    logging.basicConfig(
        level=level,
        format=VERBOSE_FORMAT if verbose else TERSE_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
