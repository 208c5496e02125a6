# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/cli/args/helpers.py
from __future__ import annotations

import argparse
import getpass
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from ...core.exceptions import Fatal


def _require(v: Any) -> bool:
    """True if v is meaningfully present (treats empty/whitespace-only strings as missing)."""
    if v is None:
        return False
    if isinstance(v, str):
        return v.strip() != ""
    if isinstance(v, (list, tuple)):
        return len(v) > 0
    return True


def _merged_get(args: argparse.Namespace, conf: Dict[str, Any], key: str) -> Any:
    """
    Prefer CLI override if present (non-empty), else config.
    Supports both snake_case keys in conf and argparse dest keys.
    """
    v = getattr(args, key, None)
    if _require(v):
        return v
    return conf.get(key)


def _merged_secret(args: argparse.Namespace, conf: Dict[str, Any], value_key: str, env_key: str) -> Optional[str]:
    """
    Resolve a secret from (CLI value) or (CLI env var name) or (YAML value) or (YAML env var name).
    Example: (hv_password, hv_password_env)
    """
    direct = _merged_get(args, conf, value_key)
    if _require(direct):
        return str(direct)

    envname = _merged_get(args, conf, env_key)
    if _require(envname):
        return os.environ.get(str(envname), None)

    return None


def _as_list(v: Any) -> List[str]:
    """YAML lists, comma-separated strings and repeated flags all end up as a list of names."""
    if v is None:
        return []
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    return [str(s).strip() for s in v if str(s).strip()]


def _can_prompt(args: argparse.Namespace, stdin: Any = None) -> bool:
    if getattr(args, "no_prompt", False):
        return False
    stream = stdin if stdin is not None else sys.stdin
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def _prompt(
    args: argparse.Namespace,
    key: str,
    label: str,
    *,
    secret: bool = False,
    input_fn: Callable[[str], str] = input,
    getpass_fn: Callable[[str], str] = getpass.getpass,
    stdin: Any = None,
) -> str:
    """
    Ask for a missing value on the terminal and store it on args.

    Without a TTY (or with --no-prompt) this is a usage error.
    """
    flag = "--" + key.replace("_", "-")
    if not _can_prompt(args, stdin):
        raise Fatal(2, f"Missing required value: {flag} ({label})")
    try:
        value = getpass_fn(f"{label}: ") if secret else input_fn(f"{label}: ")
    except EOFError:
        value = ""
    value = (value or "").strip()
    if not value:
        raise Fatal(2, f"Missing required value: {flag} ({label})")
    setattr(args, key, value)
    return value
