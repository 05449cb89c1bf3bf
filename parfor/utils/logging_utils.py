"""Logging utilities for parfor."""

import logging
from pathlib import Path
from typing import Optional, Union


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Configure logging for applications that drive parfor dispatches.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR); None reads
            ``logging.level`` from the settings file
        log_file: Optional path of a log file written alongside the console

    """
    if level is None:
        # settings imports this module for get_logger
        from parfor.utils.settings import get_logging_level

        level = get_logging_level()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance

    """
    return logging.getLogger(name)
