# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/cli/args/parser.py
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, Optional, Sequence, Tuple

from ...config.config_loader import Config
from ...core.exceptions import redact
from ...core.logger import Log, c
from ...core.utils import U
from .builder import HelpFormatter, _build_epilog
from .groups import (
    _add_archive_poll_knobs,
    _add_global_config_logging,
    _add_horizon_knobs,
    _add_nutanix_knobs,
    _add_scope_knobs,
    _add_vcenter_drs_knobs,
    _add_workflow,
)
from .validators import validate_args


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pdmigrate",
        description=c("pdmigrate: Horizon persistent-disk export / recover / migrate", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_build_epilog(),
    )

    _add_global_config_logging(p)
    _add_workflow(p)

    _add_horizon_knobs(p)
    _add_scope_knobs(p)
    _add_archive_poll_knobs(p)

    _add_vcenter_drs_knobs(p)
    _add_nutanix_knobs(p)

    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    pre.add_argument("--json-logs", dest="json_logs", action="store_true")
    pre.add_argument("--debug", action="store_true")
    pre.add_argument("--dump-config", action="store_true")
    pre.add_argument("--dump-args", action="store_true")
    return pre


def _load_merged_config(logger: Any, cfgs: Sequence[str]) -> Dict[str, Any]:
    if not cfgs:
        return {}
    expanded = Config.expand_configs(logger, list(cfgs))
    return Config.load_many(logger, expanded)


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Any = None,
    **prompt_kw: Any,
) -> Tuple[argparse.Namespace, Dict[str, Any], Any]:
    """
    Flow:
      Phase 0: parse ONLY global flags needed to locate config/logging
      Phase 1: load+merge config files
      Phase 2: apply config as defaults onto the parser
      Phase 3: full parse to get final args
      Phase 4: validate (and prompt for) what the selected workflow needs
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    parser = build_parser()

    pre = _build_preparser()
    args0, _rest = pre.parse_known_args(argv)

    if logger is None:
        logger = Log.setup(
            getattr(args0, "verbose", 0),
            getattr(args0, "log_file", None),
            quiet=getattr(args0, "quiet", 0),
            debug=getattr(args0, "debug", False),
            json_logs=getattr(args0, "json_logs", False),
        )

    conf = _load_merged_config(logger, getattr(args0, "config", None) or [])

    if getattr(args0, "dump_config", False):
        print(U.json_dump(redact(conf)))
        raise SystemExit(0)

    # Apply config as defaults so CLI can override.
    Config.apply_as_defaults(logger, parser, conf)

    args = parser.parse_args(argv)
    Config.apply_list_values(parser, args, conf)

    if getattr(args0, "dump_args", False):
        print(U.json_dump(redact(vars(args))))
        raise SystemExit(0)

    validate_args(args, conf, **prompt_kw)
    return args, conf, logger
