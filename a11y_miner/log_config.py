"""Logging setup shared by the command-line entry points."""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(log_file: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure the root logger once.

    Args:
        log_file: Also write log lines to this file (optional)
        verbose: Enable DEBUG level

    Returns:
        The root logger
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logging.getLogger()
