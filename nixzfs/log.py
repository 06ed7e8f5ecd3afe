#!/usr/bin/env python3
# Logging Module
# Timestamped step diagnostics on stderr, optional file sink

import sys

from loguru import logger

CONSOLE_FORMAT = (
    "<cyan>{time:YYYY-MM-DD[T]HH:mm:ss.SSS!UTC}Z {message}</cyan>"
)

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{message}"
)


def setup_logging(debug=False, log_file=None):
    """Replace loguru's default sink with the installer's sinks"""
    logger.remove()

    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "INFO",
        backtrace=False,
        diagnose=False,
        colorize=True,
        format=CONSOLE_FORMAT,
    )

    if log_file:
        # Keeps every command line, even without --debug
        logger.add(
            log_file,
            level="DEBUG",
            backtrace=True,
            diagnose=debug,
            format=FILE_FORMAT,
        )

    return logger
