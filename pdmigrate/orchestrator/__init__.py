# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/orchestrator/__init__.py
"""
Orchestrator package: the export, recover and migrate operations plus the
workflow dispatcher used by the CLI.
"""

from .exporter import DiskExporter
from .migrator import DiskMigrator, MigrationOptions
from .orchestrator import Orchestrator
from .recoverer import DiskRecoverer

__all__ = [
    "DiskExporter",
    "DiskMigrator",
    "DiskRecoverer",
    "MigrationOptions",
    "Orchestrator",
]
