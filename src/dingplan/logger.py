"""Logging configuration for dingplan with semantic verbosity levels."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

# Between INFO (20) and WARNING (30): committed mutations
CHANGES_LEVEL = 25
# Between DEBUG (10) and INFO (20): per-task decisions (validator, cascade)
CHECKS_LEVEL = 15

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

# Indexed by the CLI verbosity (0-3)
_LEVELS = (logging.WARNING, CHANGES_LEVEL, CHECKS_LEVEL, logging.DEBUG)


class PlannerLogger(logging.Logger):
    """Logger with one method per verbosity level.

    - changes(): level 1, tasks moved, lanes reordered, edges added
    - checks(): level 2, what the validator and cascade looked at
    - debug(): level 3, everything else
    """

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a committed change (verbosity level 1)."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a check or decision (verbosity level 2)."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> PlannerLogger:
    """Return the dingplan logger singleton.

    The logger class is swapped in only for the duration of the lookup so
    other libraries keep getting plain loggers.
    """
    previous = logging.getLoggerClass()
    logging.setLoggerClass(PlannerLogger)
    try:
        logger = logging.getLogger("dingplan")
    finally:
        logging.setLoggerClass(previous)
    assert isinstance(logger, PlannerLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Configure the dingplan logger.

    Can be called repeatedly; existing handlers are replaced.

    Args:
        verbosity: 0=warnings and errors, 1=changes, 2=checks, 3=debug
        stream: Output stream (defaults to sys.stderr)
    """
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(_LEVELS[min(max(verbosity, 0), len(_LEVELS) - 1)])

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Reset the logger to a clean, quiet state (used by tests)."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
    logger.propagate = True

