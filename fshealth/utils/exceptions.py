#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""User-defined exceptions and the monitoring state each of them ends in."""

from collections.abc import Iterable

from fshealth.utils.statename import State

__all__ = [
    "ConfigError",
    "ExecutionError",
    "FSHealthException",
    "InvalidAttribute",
    "NotFound",
    "ParseError",
]


# never used directly in the code. Just some wrapper to make all of our
# exceptions handleable with one call
class FSHealthException(Exception):
    state = State.UNKNOWN


class ConfigError(FSHealthException):
    """Malformed thresholds or conflicting command line options

    Always raised before fs_cli is executed."""


class ExecutionError(FSHealthException):
    """fs_cli could not be started or exited with a non-zero status"""


class ParseError(FSHealthException):
    """fs_cli output is no well-formed XML or lacks an expected value"""


class NotFound(FSHealthException):
    """The requested profile or gateway is not known to the switch

    >>> str(NotFound("profile", "foo", ["internal", "external"]))
    "Sorry, that's not an running profile (foo)! Available: internal, external"
    """

    state = State.CRIT

    def __init__(self, kind: str, name: str, available: Iterable[str]) -> None:
        self.kind = kind
        self.name = name
        self.available = list(dict.fromkeys(available))
        super().__init__(
            f"Sorry, that's not an running {kind} ({name})! "
            f"Available: {', '.join(self.available)}"
        )


class InvalidAttribute(FSHealthException):
    """The attribute is not supported for the kind of target

    >>> str(InvalidAttribute("gateway", "registrations", ["to", "failed-calls-in"]))
    "Sorry, that's not an allowed attribute for gateway (attribute=registrations)! Allowed: to, failed-calls-in"
    """

    state = State.CRIT

    def __init__(self, kind: str, attribute: str, allowed: Iterable[str]) -> None:
        self.kind = kind
        self.attribute = attribute
        self.allowed = list(allowed)
        super().__init__(
            f"Sorry, that's not an allowed attribute for {kind} (attribute={attribute})! "
            f"Allowed: {', '.join(self.allowed)}"
        )
