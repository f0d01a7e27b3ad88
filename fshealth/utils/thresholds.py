#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Threshold ranges as used by monitoring plug-ins

The general format is "[@][start:][end]". Both bounds are inclusive.
A plain "end" means "0:end". With a colon, an omitted start (or "~")
means negative infinity and an omitted end means positive infinity.
A leading "@" inverts the range: the value alerts if it is inside.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from fshealth.utils.exceptions import ConfigError
from fshealth.utils.statename import State

Number = int | float


@dataclass(frozen=True)
class Range:
    start: Number
    end: Number
    invert: bool = False

    @classmethod
    def parse(cls, spec: str) -> Range:
        """
        >>> Range.parse("10:20")
        Range(start=10, end=20, invert=False)
        >>> Range.parse("@~:1.5")
        Range(start=-inf, end=1.5, invert=True)
        >>> Range.parse("5")
        Range(start=0, end=5, invert=False)
        >>> Range.parse("5:")
        Range(start=5, end=inf, invert=False)
        """
        text = spec.strip()
        invert = text.startswith("@")
        if invert:
            text = text[1:]

        if ":" in text:
            start_str, end_str = text.split(":", 1)
            start = -math.inf if start_str in ("", "~") else cls._parse_atom(start_str, spec)
            end = math.inf if end_str == "" else cls._parse_atom(end_str, spec)
        else:
            start, end = 0, cls._parse_atom(text, spec)

        if start > end:
            raise ConfigError(f"Invalid threshold range '{spec}': start must not be greater than end")
        return cls(start, end, invert)

    @staticmethod
    def _parse_atom(atom: str, spec: str) -> Number:
        try:
            value: Number = int(atom)
        except ValueError:
            try:
                value = float(atom)
            except ValueError:
                raise ConfigError(f"Invalid threshold range '{spec}'") from None
        if math.isnan(value) or math.isinf(value):
            raise ConfigError(f"Invalid threshold range '{spec}'")
        return value

    def alerts(self, value: Number) -> bool:
        """Tell whether the value breaches the range

        >>> [Range.parse("10:20").alerts(v) for v in (9, 10, 20, 21)]
        [True, False, False, True]
        >>> [Range.parse("@10:20").alerts(v) for v in (9, 10, 20, 21)]
        [False, True, True, False]
        """
        inside = self.start <= value <= self.end
        return inside if self.invert else not inside

    def __str__(self) -> str:
        """
        >>> str(Range.parse("@~:5")), str(Range.parse("0:")), str(Range.parse("3:7"))
        ('@~:5', '0:', '3:7')
        """
        parts = ["@"] if self.invert else []
        if self.start == -math.inf:
            parts.append("~:")
        elif self.start != 0 or self.end == math.inf:
            parts.append(f"{self.start}:")
        if self.end != math.inf:
            parts.append(f"{self.end}")
        return "".join(parts)


def evaluate(value: Number, warning: Range | None, critical: Range | None) -> State:
    """Classify the value, critical wins over warning

    >>> evaluate(25, Range.parse("10:20"), Range.parse("0:30"))
    <State.WARN: 1>
    >>> evaluate(35, Range.parse("10:20"), Range.parse("0:30"))
    <State.CRIT: 2>
    >>> evaluate(35, None, None)
    <State.OK: 0>
    """
    if critical is not None and critical.alerts(value):
        return State.CRIT
    if warning is not None and warning.alerts(value):
        return State.WARN
    return State.OK
