# SPDX-License-Identifier: LGPL-3.0-or-later
# pdmigrate/core/exceptions.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

REDACTED = "***REDACTED***"


def _safe_int(x: Any, default: int = 1) -> int:
    try:
        return int(x)
    except Exception:
        return default


def _clamp_exit_code(code: int) -> int:
    if code < 0:
        return 1
    if code > 255:
        return 255
    return code


def _one_line(s: str, limit: int = 600) -> str:
    s = (s or "").strip().replace("\r", " ").replace("\n", " ")
    s = " ".join(s.split())
    return s if len(s) <= limit else (s[: limit - 3] + "...")


_SECRET_KEY_PARTS = (
    "pass",
    "password",
    "passwd",
    "secret",
    "token",
    "apikey",
    "api_key",
    "auth",
    "cookie",
    "session",
    "bearer",
    "private",
)


def is_secret_key(k: str) -> bool:
    ks = (k or "").lower()
    return any(p in ks for p in _SECRET_KEY_PARTS)


def redact(obj: Any) -> Any:
    """Return a copy of obj with secret-looking mapping keys redacted (recursive)."""
    if isinstance(obj, dict):
        return {k: (REDACTED if is_secret_key(str(k)) else redact(v)) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return type(obj)(redact(v) for v in obj)
    return obj


def _format_context_compact(ctx: Dict[str, Any]) -> str:
    parts = []
    for k, v in sorted(redact(ctx).items()):
        parts.append(f"{k}={v!r}")
    return ", ".join(parts)


@dataclass(eq=False)
class PdMigrateError(Exception):
    """
    Base project error with:
      - stable fields for reporting/JSON
      - readable __str__ (what users see)
      - safe code handling (never crashes on int())
    """
    code: int = 1
    msg: str = "error"
    cause: Optional[BaseException] = None
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.code = _clamp_exit_code(_safe_int(self.code, default=1))
        self.msg = _one_line(self.msg) or self.__class__.__name__
        if self.context is None:
            self.context = {}
        super().__init__(self.msg)
        self.args = (self.msg,)

    def user_message(self, *, include_context: bool = False, include_cause: bool = False) -> str:
        """
        Human-friendly message for CLI output/logs.
        """
        parts = [self.msg or self.__class__.__name__]

        if include_context and self.context:
            parts.append(f"[{_one_line(_format_context_compact(self.context), limit=600)}]")

        if include_cause and self.cause is not None:
            parts.append(f"(cause: {type(self.cause).__name__}: {_one_line(str(self.cause))})")

        return " ".join(parts)

    def __str__(self) -> str:
        return self.user_message(include_context=False, include_cause=False)

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "code": self.code,
            "message": self.msg,
            "context": redact(self.context or {}),
        }
        if include_cause and self.cause is not None:
            d["cause"] = {"type": type(self.cause).__name__, "message": _one_line(str(self.cause))}
        return d


class Fatal(PdMigrateError):
    """
    User-facing fatal error (exit code should be honored by top-level main()).
    """
    pass


@dataclass(eq=False)
class RemoteConnectionError(PdMigrateError, ConnectionError):
    """Could not establish (or keep) a session with a remote endpoint."""
    code: int = 12


@dataclass(eq=False)
class LookupFailed(PdMigrateError, LookupError):
    """A named entity could not be resolved to exactly one id."""
    code: int = 11


class EntityNotFound(LookupFailed):
    """Zero matches for a name."""
    pass


@dataclass(eq=False)
class AmbiguousMatch(LookupFailed):
    """More than one match for a name; callers must never pick one."""
    code: int = 13


@dataclass(eq=False)
class RemoteCallError(PdMigrateError):
    """
    A vendor API call failed (HTTP error status, transport error after
    retries, or a remote task that ended in error).
    """
    code: int = 30


@dataclass(eq=False)
class PollTimeout(PdMigrateError, TimeoutError):
    code: int = 14


@dataclass(eq=False)
class InventoryError(PdMigrateError, ValueError):
    """Malformed inventory file or record batch."""
    code: int = 40


@dataclass(eq=False)
class PreCheckFailed(Fatal):
    """Dry validation of a migration batch failed; nothing was changed."""
    code: int = 11


def format_exception_for_cli(e: BaseException, *, verbose: int = 0) -> str:
    """
    One-liner output for CLI.

    verbose=0: just message
    verbose=1: message + compact context (if any)
    verbose>=2: message + context + cause
    """
    if isinstance(e, PdMigrateError):
        return e.user_message(
            include_context=(verbose >= 1),
            include_cause=(verbose >= 2),
        )

    if verbose >= 2:
        return f"{type(e).__name__}: {_one_line(str(e))}"
    return _one_line(str(e)) or type(e).__name__
