"""Logging setup for Merkle Guard."""

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "merkle_guard"


def setup_logging(level: int = logging.INFO, console: Console | None = None) -> logging.Logger:
    """
    Attach a rich handler to the package logger.

    Args:
        level: Logging level for the package logger
        console: Console to log to (defaults to stderr)

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Avoid duplicate configuration
    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return logger

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
