"""Logging configuration for OmniTube."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Route the ``omnitube`` loggers to stderr through rich.

    Args:
        level: Log level name used when not verbose.
        verbose: If True, log DEBUG and above with timestamps.
    """
    logger = logging.getLogger("omnitube")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else level.upper())
    logger.propagate = False
