# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/nutanix/snapshot.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from ..core.exceptions import PdMigrateError
from ..core.logger import Log
from ..core.utils import U
from ..inventory.csv_inventory import write_csv_rows
from .client import PrismClient

UNPROTECTED_COLUMNS = ("VmName", "VmUuid")


@dataclass(frozen=True)
class SnapshotResult:
    vm: str
    snapshot_name: str
    task_uuid: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SnapshotRunner:
    """
    On-demand snapshots of named VMs, one at a time.

    A VM that cannot be found or whose snapshot task fails is reported in the
    results; the remaining VMs are still processed.
    """

    def __init__(self, logger: logging.Logger, client: PrismClient, *, timestamp: Callable[[], str] = U.now_ts):
        self.logger = logger
        self.client = client
        self._timestamp = timestamp

    def snapshot(self, vm_names: Sequence[str], prefix: str = "pdmigrate") -> List[SnapshotResult]:
        results: List[SnapshotResult] = []
        for vm in vm_names:
            name = f"{prefix}-{vm}-{self._timestamp()}"
            log = Log.bind(self.logger, vm=vm)
            try:
                vm_uuid = str(self.client.find_vm(vm)["uuid"])
                task = self.client.snapshot_vm(vm_uuid, name)
                log.info("📸 Snapshot %s requested (task %s)", name, task)
                self.client.wait_for_task(task, what=f"snapshot of {vm}")
            except PdMigrateError as e:
                Log.fail(log, f"Snapshot failed: {e}")
                results.append(SnapshotResult(vm=vm, snapshot_name=name, error=str(e)))
                continue
            Log.ok(log, f"Snapshot {name} created")
            results.append(SnapshotResult(vm=vm, snapshot_name=name, task_uuid=task))
        return results


def unprotected_vms(client: PrismClient) -> List[Dict[str, str]]:
    """VMs not covered by any protection domain, sorted by name."""
    rows = []
    for vm in client.list_unprotected_vms():
        rows.append({
            "VmName": str(vm.get("vm_name") or vm.get("name") or ""),
            "VmUuid": str(vm.get("uuid") or vm.get("vm_id") or ""),
        })
    rows.sort(key=lambda r: r["VmName"].casefold())
    return rows


def write_unprotected_csv(path: Path, rows: Sequence[Dict[str, str]], *, logger: Optional[logging.Logger] = None) -> Path:
    out = write_csv_rows(path, UNPROTECTED_COLUMNS, rows)
    if logger:
        logger.info("📝 Wrote %d unprotected VM(s) to %s", len(rows), out)
    return out
