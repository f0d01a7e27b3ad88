#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import logging
import sys

logger = logging.getLogger("fshealth")


def get_formatter(format_str: str = "%(asctime)s %(levelname)s %(message)s") -> logging.Formatter:
    """Returns a new message formater instance that uses the standard
    log format by default. You can also set another format if you like."""
    return logging.Formatter(format_str)


def clear_console_logging() -> None:
    logger.handlers[:] = []
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.INFO)


# Set default logging handler to avoid "No handler found" warnings.
clear_console_logging()


def verbosity_to_log_level(verbosity: int) -> int:
    """
    >>> verbosity_to_log_level(0) == logging.CRITICAL
    True
    >>> verbosity_to_log_level(2) == logging.INFO
    True
    >>> verbosity_to_log_level(5) == logging.DEBUG
    True
    """
    if verbosity >= 3:
        return logging.DEBUG
    if verbosity == 2:
        return logging.INFO
    if verbosity == 1:
        return logging.WARNING
    return logging.CRITICAL


def setup_logging(verbosity: int) -> None:
    """Send log messages of the active check to stderr

    stdout is reserved for the check result, so nothing is ever
    logged there. Without -v the logger stays silent."""
    logger.handlers[:] = []
    if not verbosity:
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.CRITICAL)
        return

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(get_formatter())
    logger.addHandler(handler)
    logger.setLevel(verbosity_to_log_level(verbosity))
