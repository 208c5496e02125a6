# SPDX-License-Identifier: LGPL-3.0-or-later
# pdmigrate/nutanix/__init__.py
from .client import PrismClient
from .snapshot import SnapshotResult, SnapshotRunner, unprotected_vms, write_unprotected_csv

__all__ = ["PrismClient", "SnapshotResult", "SnapshotRunner", "unprotected_vms", "write_unprotected_csv"]
