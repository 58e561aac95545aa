"""
Centralized logging configuration.

Library modules only create module loggers with ``logging.getLogger(__name__)``;
entry points (the CLI) call ``setup_logging`` once to attach a handler.
"""
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Set up application logging with a console handler and an optional file handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a log file to write alongside the console

    Returns:
        The configured ``calcconform`` package logger
    """
    logger = logging.getLogger("calcconform")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers so repeated calls don't duplicate output
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger

