# SPDX-License-Identifier: LGPL-3.0-or-later
# pdmigrate/horizon/__init__.py
from .client import HorizonClient
from .errors import ExitCode, classify_exit_code
from .models import (
    DesktopPool,
    DiskRecord,
    Machine,
    PersistentDisk,
    PersistentDiskStatus,
    RecoveredDisk,
    RecoveryPlan,
    RecoveryPlanItem,
    RecoveryReport,
    SkippedRecord,
)

__all__ = [
    "DesktopPool",
    "DiskRecord",
    "ExitCode",
    "HorizonClient",
    "Machine",
    "PersistentDisk",
    "PersistentDiskStatus",
    "RecoveredDisk",
    "RecoveryPlan",
    "RecoveryPlanItem",
    "RecoveryReport",
    "SkippedRecord",
    "classify_exit_code",
]
