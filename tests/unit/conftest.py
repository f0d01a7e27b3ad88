#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

import logging
from collections.abc import Callable, Iterator, Mapping

import pytest

from fshealth.utils.log import clear_console_logging

SOFIA_STATUS = b"""<?xml version="1.0" encoding="ISO-8859-1"?>
<profiles>
  <profile>
    <name>internal</name>
    <type>profile</type>
    <data>sip:mod_sofia@10.0.0.5:5060</data>
    <state>RUNNING (2)</state>
  </profile>
  <alias>
    <name>10.0.0.5</name>
    <type>alias</type>
    <data>internal</data>
    <state>ALIASED</state>
  </alias>
  <profile>
    <name>external</name>
    <type>profile</type>
    <data>sip:mod_sofia@10.0.0.5:5080</data>
    <state>RUNNING (0)</state>
  </profile>
  <gateway>
    <name>carrier</name>
    <type>gateway</type>
    <data>sip:joe@sip.carrier.example</data>
    <state>REGED</state>
  </gateway>
  <gateway>
    <name>backup</name>
    <type>gateway</type>
    <data>sip:joe@backup.carrier.example</data>
    <state>FAIL_WAIT</state>
  </gateway>
  <profile>
    <name>internal-ipv6</name>
    <type>profile</type>
    <data>sip:mod_sofia@[::1]:5060</data>
    <state>RUNNING (1)</state>
  </profile>
</profiles>
"""

PROFILE_INTERNAL = b"""<?xml version="1.0" encoding="ISO-8859-1"?>
<profile>
  <profile-info>
    <domain-name>N/A</domain-name>
    <auto-nat>false</auto-nat>
    <url>sip:mod_sofia@10.0.0.5:5060</url>
    <bind-url>sip:mod_sofia@10.0.0.5:5060;transport=udp,tcp</bind-url>
    <tls-url>sips:mod_sofia@10.0.0.5:5061</tls-url>
    <calls-in>14</calls-in>
    <failed-calls-in>3</failed-calls-in>
    <calls-out>9</calls-out>
    <failed-calls-out>1</failed-calls-out>
    <registrations>17</registrations>
  </profile-info>
  <registrations>
  </registrations>
</profile>
"""

PROFILE_EXTERNAL = b"""<?xml version="1.0" encoding="ISO-8859-1"?>
<profile>
  <profile-info>
    <url>sip:mod_sofia@10.0.0.5:5080</url>
    <tls-url></tls-url>
    <failed-calls-in>0</failed-calls-in>
    <failed-calls-out>0</failed-calls-out>
  </profile-info>
</profile>
"""

GATEWAY_CARRIER = b"""<?xml version="1.0" encoding="ISO-8859-1"?>
<gateway>
  <name>carrier</name>
  <profile>external</profile>
  <scheme>Digest</scheme>
  <realm>sip.carrier.example</realm>
  <username>joe</username>
  <to>sip:joe@sip.carrier.example</to>
  <state>REGED</state>
  <status>UP</status>
  <calls-in>5</calls-in>
  <calls-out>7</calls-out>
  <failed-calls-in>2</failed-calls-in>
  <failed-calls-out>4</failed-calls-out>
</gateway>
"""

GATEWAY_BACKUP = b"""<?xml version="1.0" encoding="ISO-8859-1"?>
<gateway>
  <name>backup</name>
  <to>sip:joe@backup.carrier.example</to>
  <state>FAILED</state>
  <status>DOWN</status>
  <failed-calls-in>0</failed-calls-in>
  <failed-calls-out>11</failed-calls-out>
</gateway>
"""


class FakeFsCli:
    """Replays canned fs_cli output and records the queries"""

    def __init__(self, responses: Mapping[str, bytes]) -> None:
        self.responses = responses
        self.queries: list[str] = []

    def __call__(self, query: str) -> bytes:
        self.queries.append(query)
        return self.responses.get(query, b"Invalid Profile!\n")


@pytest.fixture(name="fs_cli")
def fixture_fs_cli() -> FakeFsCli:
    return FakeFsCli(
        {
            "sofia xmlstatus": SOFIA_STATUS,
            "sofia xmlstatus profile internal": PROFILE_INTERNAL,
            "sofia xmlstatus profile external": PROFILE_EXTERNAL,
            "sofia xmlstatus gateway carrier": GATEWAY_CARRIER,
            "sofia xmlstatus gateway backup": GATEWAY_BACKUP,
        }
    )


@pytest.fixture(name="make_fs_cli")
def fixture_make_fs_cli() -> Callable[[Mapping[str, bytes]], FakeFsCli]:
    return FakeFsCli


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    yield
    clear_console_logging()
    logging.disable(logging.NOTSET)
