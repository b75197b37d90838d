"""Logging setup for command-line use.

Library modules only create loggers; handlers are installed here, by the
CLI, and nowhere else.
"""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialize the root logger.

    Args:
        level: Root log level
        force: Replace handlers installed by an earlier call
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


def verbosity_to_level(verbose: int) -> int:
    """Map a repeated ``-v`` count to a log level (0 = WARNING)."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING
