# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/cli/args/builder.py
from __future__ import annotations

import argparse

from ...core.logger import c
from ..help_texts import WORKFLOW_SUMMARY, YAML_EXAMPLE


class HelpFormatter(argparse.RawDescriptionHelpFormatter, argparse.ArgumentDefaultsHelpFormatter):
    """Combines raw description formatting with default value display in help."""


def _build_epilog() -> str:
    return (
        c("Workflows:", "cyan", ["bold"])
        + c(WORKFLOW_SUMMARY, "cyan")
        + "\n"
        + c("YAML examples:\n", "cyan", ["bold"])
        + c(YAML_EXAMPLE, "cyan")
    )
