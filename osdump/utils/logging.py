"""Logging configuration with rich console output and optional file logging.

This module provides logging setup for the osdump CLI tool with:
- Rich console output with timestamps
- Optional file logging with a detailed line format
- Sensitive data masking for passwords
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

LOGGER_NAME = "osdump"


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> logging.Logger:
    """Set up logging with rich console output and an optional file handler.

    Creates a logger with:
    - Console output using RichHandler with timestamps
    - File output to ``log_file`` when given
    - DEBUG level for file, INFO for console (DEBUG if verbose)

    Args:
        verbose: If True, console shows DEBUG level; otherwise INFO.
        log_file: Optional path of a log file to append to.

    Returns:
        Configured logger instance for the application.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to avoid duplicates
    logger.handlers.clear()

    console_level = logging.DEBUG if verbose else logging.INFO
    console_handler = RichHandler(
        show_time=True,
        show_path=verbose,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        markup=False,
    )
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)
        logger.debug(f"Logging initialized. Log file: {log_file}")

    return logger


def mask_sensitive_data(value: str, visible_chars: int = 4) -> str:
    """Mask sensitive data, showing only the last few characters.

    Args:
        value: The sensitive string to mask (e.g., a password).
        visible_chars: Number of characters to show at the end.

    Returns:
        Masked string with asterisks and visible suffix.

    Examples:
        >>> mask_sensitive_data("s3cr3t-passw0rd")
        '***********w0rd'
        >>> mask_sensitive_data("")
        ''
    """
    if not value:
        return ""

    if len(value) <= visible_chars:
        # For very short strings, mask all but last char
        if len(value) <= 1:
            return "*" * len(value)
        return "*" * (len(value) - 1) + value[-1]

    masked_length = len(value) - visible_chars
    return "*" * masked_length + value[-visible_chars:]


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance for the osdump package.

    Args:
        name: Optional sub-logger name. If None, returns the main logger.

    Returns:
        Logger instance.
    """
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
