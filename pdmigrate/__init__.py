# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/__init__.py
"""
pdmigrate - Horizon persistent-disk migration toolkit

Exports persistent disks of a Horizon View pool to a CSV inventory, re-attaches
them on another pool or Connection Server, and migrates them end to end.
Also carries small vCenter DRS and Nutanix Prism workflows.

Usage as a library:

    from pdmigrate import DiskExporter, HorizonClient

    with HorizonClient(logger, "cs1.example.com", "admin", pw, domain="acme") as hv:
        records = DiskExporter(logger, hv).export(pool_filter="Engineering")
"""

__version__ = "0.1.0"

from .horizon import DiskRecord, HorizonClient
from .orchestrator import DiskExporter, DiskMigrator, DiskRecoverer, Orchestrator

__all__ = [
    "__version__",
    "DiskExporter",
    "DiskMigrator",
    "DiskRecord",
    "DiskRecoverer",
    "HorizonClient",
    "Orchestrator",
]
