"""Logging configuration for the exporter."""

import sys

from loguru import logger

DEFAULT_STEP = "cloud-export"


def configure_logging(*, verbose: bool = False) -> None:
    """Configure loguru with appropriate level and a per-step prefix."""
    logger.remove()
    logger.configure(extra={"step": DEFAULT_STEP})
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level, format="{level.icon} {extra[step]:<15} | {message}")
