#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Query the sofia (SIP) module of FreeSWITCH via fs_cli

Example output of fs_cli -x "sofia xmlstatus":

<profiles>
  <profile>
    <name>internal</name>
    <type>profile</type>
    <data>sip:mod_sofia@10.0.0.5:5060</data>
    <state>RUNNING (2)</state>
  </profile>
  <gateway>
    <name>carrier</name>
    <type>gateway</type>
    <data>sip:joe@sip.carrier.example</data>
    <state>REGED</state>
  </gateway>
</profiles>

"sofia xmlstatus profile <name>" returns a <profile> document with a
<profile-info> child, "sofia xmlstatus gateway <name>" a <gateway>
document. Unknown names produce plain text such as "Invalid Profile!".
"""

from __future__ import annotations

import re
import subprocess
import xml.etree.ElementTree as ET
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from fshealth.utils.exceptions import ExecutionError, ParseError
from fshealth.utils.log import logger

DEFAULT_FS_CLI = "/usr/bin/fs_cli"


class StatusSourceProto(Protocol):
    def __call__(self, query: str) -> bytes: ...


@dataclass(frozen=True)
class ProfileSummary:
    name: str
    state: str

    @property
    def current_calls(self) -> int | None:
        """Number of calls, as embedded in the state of the profile

        >>> ProfileSummary("internal", "RUNNING (12)").current_calls
        12
        >>> ProfileSummary("internal", "RUNNING").current_calls is None
        True
        """
        if (match := re.search(r"\((\d+)\)", self.state)) is None:
            return None
        return int(match.group(1))


@dataclass(frozen=True)
class GatewaySummary:
    name: str
    state: str


@dataclass(frozen=True)
class SofiaStatus:
    profiles: Sequence[ProfileSummary]
    gateways: Sequence[GatewaySummary]


@dataclass(frozen=True)
class ProfileDetail:
    url: str
    tls_url: str
    registrations: str
    failed_calls_in: str
    failed_calls_out: str


@dataclass(frozen=True)
class GatewayDetail:
    to: str
    state: str
    status: str
    failed_calls_in: str
    failed_calls_out: str


class FsCli:
    def __init__(self, executable: str = DEFAULT_FS_CLI) -> None:
        self.executable = executable

    def __call__(self, query: str) -> bytes:
        cmd = [self.executable, "-x", query]
        logger.debug("Executing %r", cmd)
        try:
            completed_process = subprocess.run(
                cmd,
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise ExecutionError(f"Cannot execute {self.executable}: {e}") from e

        if completed_process.returncode:
            output = completed_process.stderr or completed_process.stdout
            # the message ends up in the single line of check output
            text = " ".join(output.decode("utf-8", "replace").split())
            raise ExecutionError(
                f"{self.executable} -x '{query}' failed with exit code "
                f"{completed_process.returncode}: {text}"
            )
        logger.debug("Got %d bytes of output", len(completed_process.stdout))
        return completed_process.stdout


def _parse_document(raw: bytes, root_tag: str) -> ET.Element:
    """
    >>> _parse_document(b"<gateway><to>x</to></gateway>", "gateway").tag
    'gateway'
    """
    try:
        root = ET.fromstring(raw)
    except ET.ParseError as e:
        text = " ".join(raw.decode("utf-8", "replace").split())
        raise ParseError(f"Cannot parse fs_cli output ({e}): {text[:80]}") from e

    if root.tag != root_tag:
        raise ParseError(f"Unexpected fs_cli output: expected <{root_tag}>, got <{root.tag}>")
    return root


def _find_text(element: ET.Element, path: str) -> str:
    """Missing and empty elements both end up as empty string

    >>> _find_text(ET.fromstring("<a><b> x </b><c/></a>"), "b")
    'x'
    >>> _find_text(ET.fromstring("<a><b> x </b><c/></a>"), "c")
    ''
    >>> _find_text(ET.fromstring("<a><b> x </b><c/></a>"), "d")
    ''
    """
    return (element.findtext(path) or "").strip()


def parse_sofia_status(raw: bytes) -> SofiaStatus:
    root = _parse_document(raw, "profiles")
    return SofiaStatus(
        profiles=tuple(
            ProfileSummary(_find_text(node, "name"), _find_text(node, "state"))
            for node in root.findall("profile")
        ),
        gateways=tuple(
            GatewaySummary(_find_text(node, "name"), _find_text(node, "state"))
            for node in root.findall("gateway")
        ),
    )


def parse_profile_detail(raw: bytes) -> ProfileDetail:
    info = _parse_document(raw, "profile").find("profile-info")
    if info is None:
        # e.g. an alias; nothing to look up, all fields are absent
        info = ET.Element("profile-info")
    return ProfileDetail(
        url=_find_text(info, "url"),
        tls_url=_find_text(info, "tls-url"),
        registrations=_find_text(info, "registrations"),
        failed_calls_in=_find_text(info, "failed-calls-in"),
        failed_calls_out=_find_text(info, "failed-calls-out"),
    )


def parse_gateway_detail(raw: bytes) -> GatewayDetail:
    root = _parse_document(raw, "gateway")
    return GatewayDetail(
        to=_find_text(root, "to"),
        state=_find_text(root, "state"),
        status=_find_text(root, "status"),
        failed_calls_in=_find_text(root, "failed-calls-in"),
        failed_calls_out=_find_text(root, "failed-calls-out"),
    )


def query_sofia_status(source: StatusSourceProto) -> SofiaStatus:
    return parse_sofia_status(source("sofia xmlstatus"))


def query_profile_detail(source: StatusSourceProto, profile: str) -> ProfileDetail:
    return parse_profile_detail(source(f"sofia xmlstatus profile {profile}"))


def query_gateway_detail(source: StatusSourceProto, gateway: str) -> GatewayDetail:
    return parse_gateway_detail(source(f"sofia xmlstatus gateway {gateway}"))
