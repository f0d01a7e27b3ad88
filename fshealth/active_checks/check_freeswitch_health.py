#!/usr/bin/env python3
# Copyright (C) 2024 Checkmk GmbH - License: GNU General Public License v2
# This file is part of Checkmk (https://checkmk.com). It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

# This check asks FreeSWITCH (via fs_cli) for the state of one SIP profile
# or gateway and reports a single attribute of it, e.g.
#
#   check_freeswitch_health --profile internal
#   Result of check is: sip:mod_sofia@10.0.0.5:5060 RUNNING | sofia/status/internal/url=1 '# of current calls'=2
#
#   check_freeswitch_health --profile external --gateway carrier -c 1:1
#   Result of check is: sip:joe@sip.carrier.example REGED (UP) | sofia/status/carrier/to=1;;1:1
#
#   check_freeswitch_health --profile internal --attribute calls -w 100 -c 150 -f Total_Calls
#   Result of check is: 2 current calls | Total_Calls=2;100;150
#
# Status checks (url, tls-url, to) return 1 if the profile is up or the
# gateway is registered, so use -c 1:1 to alert on them.

from __future__ import annotations

import argparse
import enum
import os
import re
import sys
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, NoReturn

from pydantic import BaseModel, field_validator, model_validator, ValidationError

from fshealth import __version__
from fshealth.utils.exceptions import (
    ConfigError,
    FSHealthException,
    InvalidAttribute,
    NotFound,
    ParseError,
)
from fshealth.utils.fs_cli import (
    DEFAULT_FS_CLI,
    FsCli,
    GatewaySummary,
    ProfileSummary,
    query_gateway_detail,
    query_profile_detail,
    query_sofia_status,
    SofiaStatus,
    StatusSourceProto,
)
from fshealth.utils.log import logger, setup_logging
from fshealth.utils.statename import service_state_name, State
from fshealth.utils.thresholds import evaluate, Range

Metric = tuple[str, int, Range | None, Range | None]


def main(
    argv: Sequence[str] | None = None,
    status_source: StatusSourceProto | None = None,
) -> int:
    exitcode, info, perf = _check_freeswitch_health_main(
        sys.argv[1:] if argv is None else argv,
        status_source,
    )
    _output_check_result(info, perf)
    return exitcode


class TargetKind(enum.Enum):
    PROFILE = "profile"
    GATEWAY = "gateway"


class Args(BaseModel):
    profile: None | str
    gateway: None | str
    attribute: str
    warning: None | Range
    critical: None | Range
    perfdatatitle: None | str
    fs_cli: str
    verbose: int
    debug: bool

    @field_validator("warning", "critical", mode="before")
    @classmethod
    def _parse_range(cls, value: Any) -> Any:
        if value is None or isinstance(value, Range):
            return value
        if not str(value).strip():
            return None
        try:
            return Range.parse(str(value))
        except ConfigError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def _check_target(self) -> Args:
        if not self.profile and not self.gateway:
            raise ValueError("Either --profile or --gateway is required")
        return self


@dataclass(frozen=True)
class CheckRequest:
    kind: TargetKind
    target: str
    attribute: str
    warning: Range | None
    critical: Range | None
    perf_label: str


@dataclass(frozen=True)
class CheckResult:
    value: int
    rawdata: str
    secondary: tuple[str, int] | None = None


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        # exit code 2 would be CRITICAL for the monitoring core
        self.print_usage(sys.stderr)
        self.exit(State.UNKNOWN, f"{self.prog}: error: {message}\n")


class _UsageAction(argparse.Action):
    def __init__(self, option_strings: Sequence[str], dest: str, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, nargs=0, default=argparse.SUPPRESS, **kwargs)

    def __call__(self, parser: argparse.ArgumentParser, *_args: Any, **_kwargs: Any) -> None:
        parser.print_usage()
        parser.exit()


def _output_check_result(s: str, perfdata: Iterable[Metric] | None) -> None:
    if perfdata:
        s += " | %s" % " ".join(_format_metric(*m) for m in perfdata)
    sys.stdout.write("%s\n" % s)


def _format_metric(label: str, value: int, warn: Range | None, crit: Range | None) -> str:
    """
    >>> _format_metric("calls", 3, None, None)
    'calls=3'
    >>> _format_metric("calls", 3, None, Range.parse("1:1"))
    'calls=3;;1:1'
    >>> _format_metric("# of current calls", 3, Range.parse("10"), None)
    "'# of current calls'=3;10"
    """
    fields = [str(value), "" if warn is None else str(warn), "" if crit is None else str(crit)]
    return "{}={}".format(_quote_label(label), ";".join(fields).rstrip(";"))


def _quote_label(label: str) -> str:
    """
    >>> _quote_label("sofia/status/internal/url")
    'sofia/status/internal/url'
    >>> _quote_label("it's here")
    "'it''s here'"
    """
    if re.search(r"[\s='\"]", label):
        return "'%s'" % label.replace("'", "''")
    return label


def _check_freeswitch_health_main(
    argv: Sequence[str],
    status_source: StatusSourceProto | None,
) -> tuple[int, str, list[Metric] | None]:
    try:
        args = parse_arguments(argv)
    except ConfigError as e:
        return e.state, str(e), None

    setup_logging(args.verbose)
    request = make_check_request(args)
    logger.info(
        "Checking %s %s, attribute %s", request.kind.value, request.target, request.attribute
    )

    try:
        result = run_check(
            request,
            profile=args.profile,
            status_source=status_source or FsCli(args.fs_cli),
        )
    except FSHealthException as e:
        logger.warning("Check failed: %s", e)
        return e.state, str(e), None
    except Exception as e:
        if args.debug:
            raise
        return State.UNKNOWN, f"Unhandled exception: {e}", None

    state = evaluate(result.value, request.warning, request.critical)
    logger.info("Value %s results in %s", result.value, service_state_name(state))

    perfdata: list[Metric] = [
        (request.perf_label, result.value, request.warning, request.critical)
    ]
    if result.secondary is not None:
        perfdata.append((*result.secondary, None, None))

    return state, "Result of check is: %s" % " ".join(result.rawdata.split()), perfdata


def parse_arguments(argv: Sequence[str]) -> Args:
    parser = _ArgumentParser(
        prog="check_freeswitch_health",
        description="Check a SIP profile or gateway of FreeSWITCH. "
        "This plugin requires the FreeSWITCH fs_cli command to perform checks.",
        epilog="Example: check_freeswitch_health --profile internal --attribute calls "
        "-w 100 -c 150 -f Total_Calls",
    )
    parser.add_argument(
        "--profile",
        metavar="NAME",
        default=None,
        help="SIP profile to check, e.g. internal, external, internal-ipv6",
    )
    parser.add_argument(
        "--gateway",
        metavar="NAME",
        default=None,
        help="Gateway to check. If given, the gateway is checked instead of the profile.",
    )
    parser.add_argument(
        "--attribute",
        metavar="NAME",
        default="url",
        help="Attribute to check. Profiles: url, tls-url, registrations, failed-calls-in, "
        "failed-calls-out, calls. Gateways: to, failed-calls-in, failed-calls-out. "
        "(Default: url, which means 'to' for gateways)",
    )
    parser.add_argument(
        "-w",
        "--warning",
        metavar="RANGE",
        default=None,
        help="Range ([@]start:end) of allowed values, outside of which a warning is "
        "generated. If omitted, no warning is generated.",
    )
    parser.add_argument(
        "-c",
        "--critical",
        metavar="RANGE",
        default=None,
        help="Range ([@]start:end) of allowed values, outside of which a critical "
        "alert is generated. If omitted, no alert is generated.",
    )
    parser.add_argument(
        "-f",
        "--perfdatatitle",
        metavar="TITLE",
        default=None,
        help="Label of the performance data (Default: sofia/status/TARGET/ATTRIBUTE). "
        "Whitespace is replaced by underscores.",
    )
    parser.add_argument(
        "--fs-cli",
        metavar="PATH",
        default=os.environ.get("FS_CLI", DEFAULT_FS_CLI),
        help=f"Path to the fs_cli executable (Default: $FS_CLI or {DEFAULT_FS_CLI})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Verbose mode (for even more output use -vvv)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Debug mode: let Python exceptions come through.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-?",
        "--usage",
        action=_UsageAction,
        help="Show a short usage message and exit",
    )

    try:
        return Args.model_validate(vars(parser.parse_args(argv)))
    except ValidationError as e:
        raise ConfigError(
            "; ".join(str(err["msg"]).removeprefix("Value error, ") for err in e.errors())
        ) from e


def make_check_request(args: Args) -> CheckRequest:
    """The gateway takes precedence if both a profile and a gateway are given"""
    if args.gateway:
        kind, target = TargetKind.GATEWAY, args.gateway
        attribute = "to" if args.attribute == "url" else args.attribute
    elif args.profile:
        kind, target, attribute = TargetKind.PROFILE, args.profile, args.attribute
    else:
        raise ConfigError("Either --profile or --gateway is required")

    perf_label = args.perfdatatitle or "/".join(("sofia", "status", target, attribute))
    return CheckRequest(
        kind=kind,
        target=target,
        attribute=attribute,
        warning=args.warning,
        critical=args.critical,
        perf_label=re.sub(r"\s", "_", perf_label),
    )


def find_profile(status: SofiaStatus, name: str) -> ProfileSummary:
    for profile in status.profiles:
        if profile.name == name:
            return profile
    raise NotFound("profile", name, (p.name for p in status.profiles))


def find_gateway(status: SofiaStatus, name: str) -> GatewaySummary:
    for gateway in status.gateways:
        if gateway.name == name:
            return gateway
    raise NotFound("gateway", name, (g.name for g in status.gateways))


def run_check(
    request: CheckRequest,
    *,
    profile: str | None,
    status_source: StatusSourceProto,
) -> CheckResult:
    status = query_sofia_status(status_source)

    current_calls = None
    if profile:
        current_calls = find_profile(status, profile).current_calls
    if request.kind is TargetKind.GATEWAY:
        find_gateway(status, request.target)

    select = select_attribute(request.kind, request.attribute)
    return select(status_source, request.target, current_calls)


# Selectors get the source of the scoped query, the name of the target and
# the number of calls of the profile (if known).
Selector = Callable[[StatusSourceProto, str, int | None], CheckResult]


def select_attribute(kind: TargetKind, attribute: str) -> Selector:
    try:
        return _SELECTORS[(kind, attribute)]
    except KeyError:
        raise InvalidAttribute(
            kind.value, attribute, (a for k, a in _SELECTORS if k is kind)
        ) from None


def _to_int(value: str, field: str) -> int:
    """
    >>> _to_int("17", "registrations")
    17
    """
    try:
        return int(value)
    except ValueError:
        raise ParseError(f"Value of {field} is not a number: '{value}'") from None


def _current_calls_metric(current_calls: int | None) -> tuple[str, int] | None:
    return None if current_calls is None else ("# of current calls", current_calls)


def _profile_url(source: StatusSourceProto, name: str, current_calls: int | None) -> CheckResult:
    url = query_profile_detail(source, name).url
    return CheckResult(
        value=1 if url else 0,
        rawdata=f"{url} RUNNING",
        secondary=_current_calls_metric(current_calls),
    )


def _profile_tls_url(
    source: StatusSourceProto, name: str, current_calls: int | None
) -> CheckResult:
    tls_url = query_profile_detail(source, name).tls_url
    return CheckResult(
        value=1 if tls_url else 0,
        rawdata=f"{tls_url} RUNNING (TLS)",
        secondary=_current_calls_metric(current_calls),
    )


def _profile_counter(field: str) -> Selector:
    def select(source: StatusSourceProto, name: str, _current_calls: int | None) -> CheckResult:
        detail = query_profile_detail(source, name)
        value = _to_int(getattr(detail, field.replace("-", "_")), field)
        return CheckResult(value=value, rawdata=f"{value} total")

    return select


def _profile_calls(_source: StatusSourceProto, name: str, current_calls: int | None) -> CheckResult:
    if current_calls is None:
        raise ParseError(f"Cannot determine the number of calls of profile {name}")
    return CheckResult(value=current_calls, rawdata=f"{current_calls} current calls")


def _gateway_to(source: StatusSourceProto, name: str, _current_calls: int | None) -> CheckResult:
    detail = query_gateway_detail(source, name)
    return CheckResult(
        value=1 if detail.state == "REGED" and detail.status == "UP" else 0,
        rawdata=f"{detail.to} {detail.state} ({detail.status})",
    )


def _gateway_counter(field: str) -> Selector:
    def select(source: StatusSourceProto, name: str, _current_calls: int | None) -> CheckResult:
        detail = query_gateway_detail(source, name)
        value = _to_int(getattr(detail, field.replace("-", "_")), field)
        return CheckResult(value=value, rawdata=f"{value} total")

    return select


_SELECTORS: Mapping[tuple[TargetKind, str], Selector] = {
    (TargetKind.PROFILE, "url"): _profile_url,
    (TargetKind.PROFILE, "tls-url"): _profile_tls_url,
    (TargetKind.PROFILE, "registrations"): _profile_counter("registrations"),
    (TargetKind.PROFILE, "failed-calls-in"): _profile_counter("failed-calls-in"),
    (TargetKind.PROFILE, "failed-calls-out"): _profile_counter("failed-calls-out"),
    (TargetKind.PROFILE, "calls"): _profile_calls,
    (TargetKind.GATEWAY, "to"): _gateway_to,
    (TargetKind.GATEWAY, "failed-calls-in"): _gateway_counter("failed-calls-in"),
    (TargetKind.GATEWAY, "failed-calls-out"): _gateway_counter("failed-calls-out"),
}
