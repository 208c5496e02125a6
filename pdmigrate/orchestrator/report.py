# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/orchestrator/report.py
"""Summary tables printed at the end of each workflow."""
from __future__ import annotations

from typing import Dict, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..horizon.models import DiskRecord, RecoveryReport
from ..nutanix.snapshot import SnapshotResult
from ..vcenter.drs import DrsChange


def _console(console: Optional[Console]) -> Console:
    return console if console is not None else Console()


def export_table(records: Sequence[DiskRecord]) -> Table:
    t = Table(title=f"Exported persistent disks ({len(records)})")
    t.add_column("Disk", style="cyan")
    t.add_column("User")
    t.add_column("Datastore")
    t.add_column("Path", overflow="fold")
    for r in records:
        t.add_row(escape(r.disk_name), escape(r.assigned_user), escape(r.datastore_name), escape(r.path))
    return t


def recovery_table(report: RecoveryReport) -> Table:
    t = Table(title=f"Recovery: {len(report.recovered)} recovered, {len(report.skipped)} skipped")
    t.add_column("Disk", style="cyan")
    t.add_column("User")
    t.add_column("Result")
    t.add_column("Detail", overflow="fold")
    for ok in report.recovered:
        t.add_row(escape(ok.record.disk_name), escape(ok.record.assigned_user), "[green]recovered[/green]", ok.persistent_disk_id)
    for s in report.skipped:
        t.add_row(escape(s.record.disk_name), escape(s.record.assigned_user), "[yellow]skipped[/yellow]", escape(s.reason))
    return t


def drs_table(change: DrsChange) -> Table:
    t = Table(title=f"DRS changes on {change.cluster}")
    t.add_column("Kind")
    t.add_column("Change")
    for g in change.groups:
        t.add_row("group", escape(g))
    for r in change.rules:
        t.add_row("rule", escape(r))
    if change.empty:
        t.add_row("-", "already up to date")
    return t


def snapshot_table(results: Sequence[SnapshotResult]) -> Table:
    t = Table(title="Nutanix snapshots")
    t.add_column("VM", style="cyan")
    t.add_column("Snapshot")
    t.add_column("Result")
    for r in results:
        result = "[green]ok[/green]" if r.ok else f"[red]failed[/red]: {escape(r.error or '')}"
        t.add_row(escape(r.vm), escape(r.snapshot_name), result)
    return t


def unprotected_table(rows: Sequence[Dict[str, str]]) -> Table:
    t = Table(title=f"Unprotected VMs ({len(rows)})")
    t.add_column("VM", style="cyan")
    t.add_column("UUID")
    for r in rows:
        t.add_row(escape(r["VmName"]), r["VmUuid"])
    return t


def show(table: Table, console: Optional[Console] = None) -> None:
    _console(console).print(table)
