"""
Failure classifier — map a transport error onto the closed taxonomy.

An ordered table of (predicate, class, reason) rows is evaluated top
to bottom; the first match wins and anything unmatched is ``Unknown``.
Matching uses the exception type where Python gives us one and the
message text otherwise (PowerShell and reg.exe only give us text).

Pure function, no I/O. ``classify`` never raises.
"""

from __future__ import annotations

import re
import socket
import subprocess
from collections.abc import Callable

from rebootwatch.core.models.failure import FailureClass, FailureInfo

Predicate = Callable[[BaseException | None, str], bool]


def _text(pattern: str) -> Predicate:
    regex = re.compile(pattern, re.IGNORECASE)
    return lambda _exc, message: bool(regex.search(message))


def _type(*types: type[BaseException]) -> Predicate:
    return lambda exc, _message: isinstance(exc, types)


def _any(*predicates: Predicate) -> Predicate:
    return lambda exc, message: any(p(exc, message) for p in predicates)


# ── Rules (order matters) ───────────────────────────────────────

_RULES: tuple[tuple[Predicate, FailureClass, str], ...] = (
    (
        _any(
            _type(socket.gaierror),
            _text(
                r"cannot find the computer|no such host is known|name or service not known"
                r"|nodename nor servname|could not be resolved|could not resolve"
                r"|invalid (computer|host) ?name|the computer name is (not valid|invalid)"
            ),
        ),
        FailureClass.NAME_RESOLUTION,
        "Target name does not resolve or is malformed",
    ),
    (
        _text(
            r"winrm cannot complete the operation|network path was not found"
            r"|rpc server is unavailable|host is unreachable|no route to host|network is unreachable"
            r"|service is not running"
        ),
        FailureClass.CONNECTION_BLOCKED,
        "Management transport unreachable (firewall or service down)",
    ),
    (
        _any(_type(ConnectionRefusedError), _text(r"actively refused|connection refused")),
        FailureClass.CONNECTION_REFUSED,
        "Remote endpoint refused the connection",
    ),
    (
        _text(r"client cannot process the request|trustedhosts"),
        FailureClass.PROTOCOL_CLIENT,
        "Client-side protocol, configuration or trust issue",
    ),
    (
        _any(_type(PermissionError), _text(r"access (is )?denied|unauthori[sz]ed|0x80070005")),
        FailureClass.ACCESS_DENIED,
        "Access denied on target",
    ),
    (
        _text(
            r"kerberos|negotiate authentication|authentication (failed|mechanism)"
            r"|credssp|credential|trust relationship|logon failure|user name or password is incorrect"
        ),
        FailureClass.AUTH_OR_TRUST,
        "Credential or trust negotiation failed",
    ),
    (
        _any(
            _type(TimeoutError, subprocess.TimeoutExpired, socket.timeout),
            _text(r"timed? ?out|within the time specified|operation did not complete|deadline exceeded"),
        ),
        FailureClass.TIMEOUT,
        "No response within the deadline",
    ),
    (
        _text(r"pssessionopenfailed|opening the remote session|connecting to remote server|failed to open session"),
        FailureClass.SESSION_OPEN_FAILED,
        "Remote session could not be established",
    ),
)

_UNKNOWN_REASON = "Unclassified transport failure"


def _message_of(error: BaseException | str | None) -> str:
    if error is None:
        return ""
    if isinstance(error, str):
        return error
    parts = [str(error)]
    detail = getattr(error, "detail", None)
    if isinstance(detail, str) and detail not in parts:
        parts.append(detail)
    return " | ".join(p for p in parts if p) or error.__class__.__name__


def classify(error: BaseException | str | None) -> FailureInfo:
    """Assign an error to exactly one failure class.

    Args:
        error: The exception raised by a transport, or its message.

    Returns:
        FailureInfo. Class ``Unknown`` when nothing matches.
    """
    exc = error if isinstance(error, BaseException) else None
    try:
        message = _message_of(error)
    except Exception:
        message = repr(error)

    for predicate, failure_class, reason in _RULES:
        try:
            matched = predicate(exc, message)
        except Exception:
            matched = False
        if matched:
            return FailureInfo(failure_class=failure_class, reason=reason, raw_detail=message)

    return FailureInfo(failure_class=FailureClass.UNKNOWN, reason=_UNKNOWN_REASON, raw_detail=message)
