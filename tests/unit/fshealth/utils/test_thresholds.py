#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import math

import pytest

from fshealth.utils.exceptions import ConfigError
from fshealth.utils.statename import State
from fshealth.utils.thresholds import evaluate, Range


@pytest.mark.parametrize(
    "spec, expected",
    [
        ("10", Range(0, 10)),
        ("10:", Range(10, math.inf)),
        (":10", Range(-math.inf, 10)),
        ("~:10", Range(-math.inf, 10)),
        ("10:20", Range(10, 20)),
        ("@10:20", Range(10, 20, invert=True)),
        ("-5:-1", Range(-5, -1)),
        ("0.5:1.5", Range(0.5, 1.5)),
        (" 1:1 ", Range(1, 1)),
    ],
)
def test_parse(spec: str, expected: Range) -> None:
    assert Range.parse(spec) == expected


@pytest.mark.parametrize("spec", ["", "@", "abc", "1:x", "20:10", "1:2:3", "nan", "inf:"])
def test_parse_invalid(spec: str) -> None:
    with pytest.raises(ConfigError):
        Range.parse(spec)


@pytest.mark.parametrize(
    "spec, ok, alerting",
    [
        ("10:20", [10, 15, 20], [9, 21]),
        ("@10:20", [9, 21], [10, 15, 20]),
        ("10", [0, 10], [-1, 11]),
        ("10:", [10, 10**6], [9]),
        ("~:10", [-(10**6), 10], [11]),
        ("1:1", [1], [0, 2]),
    ],
)
def test_alerts(spec: str, ok: list[int], alerting: list[int]) -> None:
    value_range = Range.parse(spec)
    assert not any(value_range.alerts(v) for v in ok)
    assert all(value_range.alerts(v) for v in alerting)


@pytest.mark.parametrize(
    "spec, rendered",
    [
        ("10", "10"),
        ("10:", "10:"),
        ("~:10", "~:10"),
        (":", "~:"),
        ("@10:20", "@10:20"),
        ("0:5", "5"),
    ],
)
def test_str(spec: str, rendered: str) -> None:
    assert str(Range.parse(spec)) == rendered


@pytest.mark.parametrize(
    "value, expected",
    [
        (15, State.OK),
        (25, State.WARN),
        (5, State.WARN),
        (35, State.CRIT),
        (-1, State.CRIT),
    ],
)
def test_evaluate(value: int, expected: State) -> None:
    assert evaluate(value, Range.parse("10:20"), Range.parse("0:30")) is expected


def test_evaluate_critical_only() -> None:
    assert evaluate(0, None, Range.parse("1:1")) is State.CRIT
    assert evaluate(1, None, Range.parse("1:1")) is State.OK
