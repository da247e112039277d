"""Logging configuration for the command line."""

import sys

from loguru import logger


def setup_logging(verbose: bool = False) -> None:
    """Replace loguru's default sink with a stderr sink at the chosen level."""
    logger.remove()
    logger.add(
        lambda msg: print(msg, end="", file=sys.stderr),
        level="DEBUG" if verbose else "WARNING",
        format="<green>{time:HH:mm:ss}</green> | <level>{level:<8}</level> | {message}",
    )
