"""Logging configuration for vidscribe."""

from __future__ import annotations

import logging
import sys
from pathlib import Path


def setup_logging(verbosity: int = 0, log_file: Path | None = None) -> None:
    """Configure logging for vidscribe.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
        log_file: Optional file that receives every record at DEBUG level.
    """
    level_map = {0: logging.WARNING, 1: logging.INFO}
    level = level_map.get(verbosity, logging.DEBUG)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter("%(levelname)s %(name)s: %(message)s")
    )

    root_logger = logging.getLogger("vidscribe")
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
        existing.close()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    root_logger.propagate = False

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root_logger.addHandler(file_handler)
        root_logger.setLevel(logging.DEBUG)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the vidscribe namespace.

    Args:
        name: Module name, typically __name__.

    Returns:
        A logger instance.
    """
    if name == "vidscribe" or name.startswith("vidscribe."):
        return logging.getLogger(name)
    return logging.getLogger(f"vidscribe.{name}")
