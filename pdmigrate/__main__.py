# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/__main__.py
from __future__ import annotations

import sys
import traceback
from typing import Any, Optional, Sequence

from .cli.args.parser import parse_args_with_config
from .core.exceptions import PdMigrateError, format_exception_for_cli
from .horizon.errors import ExitCode, classify_exit_code
from .orchestrator.orchestrator import Orchestrator


def _print_stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def _safe_log(logger: Any, level: str, msg: str) -> None:
    """
    Best-effort logging without assuming logger exists or has a given method.
    """
    if logger is None:
        _print_stderr(msg)
        return

    fn = getattr(logger, level, None)
    if callable(fn):
        fn(msg)
    else:
        _print_stderr(msg)


def _category(rc: int) -> str:
    try:
        return ExitCode(rc).name
    except ValueError:
        return "UNKNOWN"


def run(argv: Optional[Sequence[str]] = None) -> int:
    logger: Any = None

    # Phase 1: parse (usage errors and config errors land here)
    try:
        args, _conf, logger = parse_args_with_config(argv)
    except PdMigrateError as e:
        _print_stderr(f"💥 ERROR    {e}")
        return int(classify_exit_code(e))
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        return int(ExitCode.INTERRUPTED)

    verbose = int(getattr(args, "verbose", 0) or 0)

    # Phase 2: run the workflow
    try:
        return int(Orchestrator(logger, args).run())
    except PdMigrateError as e:
        rc = int(classify_exit_code(e))
        _safe_log(logger, "error", f"[{_category(rc)}] {format_exception_for_cli(e, verbose=verbose)}")
        return rc
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        return int(ExitCode.INTERRUPTED)
    except Exception as e:
        rc = int(classify_exit_code(e))
        _safe_log(logger, "error", f"💥 UNHANDLED [{_category(rc)}] {type(e).__name__}: {e}")
        _safe_log(logger, "debug", traceback.format_exc())
        return rc


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
