# SPDX-License-Identifier: LGPL-3.0-or-later
# pdmigrate/horizon/errors.py
# -*- coding: utf-8 -*-
"""Error classification and exit code handling for pdmigrate workflows"""
from __future__ import annotations

import errno
import socket
from enum import IntEnum

from ..core.exceptions import (
    AmbiguousMatch,
    InventoryError,
    LookupFailed,
    PdMigrateError,
    PollTimeout,
    RemoteCallError,
    RemoteConnectionError,
)


class ExitCode(IntEnum):
    OK = 0
    UNKNOWN = 1
    USAGE = 2
    PARTIAL = 3

    AUTH = 10
    NOT_FOUND = 11
    NETWORK = 12
    AMBIGUOUS = 13
    TIMEOUT = 14

    REMOTE_API = 30
    LOCAL_IO = 40

    INTERRUPTED = 130


def _is_usage_error(e: BaseException) -> bool:
    msg = str(e).lower()
    return (
        "unknown workflow" in msg
        or "missing required" in msg
        or "argparse" in msg
        or "usage:" in msg
    )


def _is_auth_error(e: BaseException) -> bool:
    msg = str(e).lower()
    needles = [
        "not authenticated",
        "authentication",
        "unauthorized",
        "forbidden",
        "invalid login",
        "cannot complete login",
        "access denied",
        "permission denied",
    ]
    return any(n in msg for n in needles)


def _is_network_error(e: BaseException) -> bool:
    if isinstance(e, (socket.timeout, ConnectionError)):
        return True
    if isinstance(e, OSError) and e.errno in (
        errno.ECONNREFUSED,
        errno.ETIMEDOUT,
        errno.EHOSTUNREACH,
        errno.ENETUNREACH,
        errno.ECONNRESET,
    ):
        return True
    msg = str(e).lower()
    needles = [
        "timed out",
        "connection refused",
        "connection reset",
        "max retries exceeded",
        "name or service not known",
        "temporary failure in name resolution",
        "handshake",
        "certificate verify failed",
    ]
    return any(n in msg for n in needles)


def _is_local_io_error(e: BaseException) -> bool:
    if isinstance(e, OSError) and e.errno in (
        errno.ENOENT,
        errno.EACCES,
        errno.EPERM,
        errno.ENOSPC,
        errno.EROFS,
        errno.EDQUOT,
    ):
        return True
    msg = str(e).lower()
    needles = ["no space left", "read-only file system"]
    return any(n in msg for n in needles)


def classify_exit_code(e: BaseException) -> ExitCode:
    if isinstance(e, KeyboardInterrupt):
        return ExitCode.INTERRUPTED

    # Typed errors first: their class says what went wrong.
    if isinstance(e, RemoteConnectionError):
        if e.code == ExitCode.AUTH or _is_auth_error(e):
            return ExitCode.AUTH
        return ExitCode.NETWORK
    if isinstance(e, AmbiguousMatch):
        return ExitCode.AMBIGUOUS
    if isinstance(e, LookupFailed):
        return ExitCode.NOT_FOUND
    if isinstance(e, PollTimeout):
        return ExitCode.TIMEOUT
    if isinstance(e, InventoryError):
        return ExitCode.LOCAL_IO
    if isinstance(e, RemoteCallError):
        if _is_auth_error(e):
            return ExitCode.AUTH
        return ExitCode.REMOTE_API
    if isinstance(e, PdMigrateError):
        # Fatal and friends carry an explicit code (PreCheckFailed, usage, ...).
        try:
            return ExitCode(e.code)
        except ValueError:
            return ExitCode.UNKNOWN

    # Anything else (pyVmomi faults, requests, OS errors)
    if _is_usage_error(e):
        return ExitCode.USAGE
    if _is_local_io_error(e):
        return ExitCode.LOCAL_IO
    if _is_network_error(e):
        return ExitCode.NETWORK
    if _is_auth_error(e):
        return ExitCode.AUTH

    return ExitCode.UNKNOWN
