# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/cli/args/__init__.py
"""
Argument parsing for the pdmigrate CLI.

Re-exports the public pieces of the split modules.
"""
from __future__ import annotations

from .builder import HelpFormatter, _build_epilog
from .groups import WORKFLOWS
from .helpers import _as_list, _merged_get, _merged_secret, _prompt, _require
from .parser import _build_preparser, _load_merged_config, build_parser, parse_args_with_config
from .validators import validate_args

__all__ = [
    "HelpFormatter",
    "WORKFLOWS",
    "_as_list",
    "_build_epilog",
    "_build_preparser",
    "_load_merged_config",
    "_merged_get",
    "_merged_secret",
    "_prompt",
    "_require",
    "build_parser",
    "parse_args_with_config",
    "validate_args",
]
