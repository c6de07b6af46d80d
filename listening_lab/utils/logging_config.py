"""Centralized logging configuration for Listening Lab.

This module provides consistent logging setup across the CLI and any host
application embedding the engine. Configuration respects the ``LOG_LEVEL``
environment variable and provides sensible defaults for production and
development.
"""

from __future__ import annotations

import logging
import os
import sys
import warnings
from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _configure_third_party_log_levels(*, log_level: int) -> None:
    """Set explicit levels for noisy third-party loggers.

    Args:
        log_level: Effective root log level chosen for the application.
    """
    # Rich/markdown rendering internals are never interesting below WARNING.
    noisy_level = max(log_level, logging.WARNING)
    logging.getLogger("markdown_it").setLevel(noisy_level)
    logging.getLogger("asyncio").setLevel(noisy_level)


def _resolve_level(level: LogLevel | None, *, verbose: bool, quiet: bool) -> int:
    """Determine the effective numeric log level.

    Args:
        level: Explicit log level (overrides verbose/quiet).
        verbose: Use DEBUG when no explicit level is given.
        quiet: Use CRITICAL when no explicit level is given.

    Returns:
        Numeric logging level.
    """
    if level is not None:
        return getattr(logging, level.upper())
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.CRITICAL
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def configure_logging(
    *,
    level: LogLevel | None = None,
    verbose: bool = False,
    quiet: bool = False,
    format_string: str | None = None,
) -> None:
    """Configure centralized logging for the application.

    This should be called once at application startup (CLI entry or host
    launch). Library code only ever asks for loggers. Records go to stderr so
    command output on stdout stays machine-readable.

    Args:
        level: Explicit log level (overrides verbose/quiet).
        verbose: Enable verbose logging (DEBUG level).
        quiet: Suppress all non-critical logs and warnings.
        format_string: Custom log format (uses default if None).

    Examples:
        >>> # CLI verbose mode
        >>> configure_logging(verbose=True)

        >>> # Production quiet mode
        >>> configure_logging(quiet=True)
    """
    log_level = _resolve_level(level, verbose=verbose, quiet=quiet)

    if format_string is None:
        format_string = DEFAULT_FORMAT

    logging.basicConfig(
        level=log_level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,  # Reconfigure even if already configured
    )
    _configure_third_party_log_levels(log_level=log_level)

    if quiet:
        warnings.filterwarnings("ignore")
    else:
        logger = logging.getLogger(__name__)
        logger.debug(f"Logging configured: level={logging.getLevelName(log_level)}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__ of calling module).

    Returns:
        Configured logger instance.

    Examples:
        >>> logger = get_logger(__name__)
        >>> logger.info("Chunk plan rebuilt")
    """
    return logging.getLogger(name)
