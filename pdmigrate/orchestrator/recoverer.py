# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/orchestrator/recoverer.py

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Tuple

from ..core.exceptions import LookupFailed, PreCheckFailed
from ..core.logger import Log
from ..horizon import resolvers as R
from ..horizon.models import (
    DesktopPool,
    DiskRecord,
    RecoveredDisk,
    RecoveryPlan,
    RecoveryPlanItem,
    RecoveryReport,
    SkippedRecord,
)


class DiskRecoverer:
    """
    Re-attaches exported disks on a target Horizon instance.

    The target pool and vCenter must resolve or nothing happens. After that
    each record stands alone: a record whose datastore, virtual disk or user
    cannot be resolved is skipped with a warning. Remote call failures while
    creating entities are not skipped; they propagate.
    """

    def __init__(self, logger: logging.Logger, conn: Any):
        self.logger = logger
        self.conn = conn

    def _resolve_target(self, target_pool: str, target_vcenter: str) -> Tuple[DesktopPool, str]:
        pool = R.find_pool(self.conn, target_pool)
        vcenter_id = R.find_vcenter_id(self.conn, target_vcenter)
        Log.trace(self.logger, "🎯 target pool %r -> %s, vCenter %r -> %s", target_pool, pool.id, target_vcenter, vcenter_id)
        return pool, vcenter_id

    def _resolve_record(self, pool: DesktopPool, vcenter_id: str, record: DiskRecord) -> RecoveryPlanItem:
        ds = R.find_datastore(self.conn, vcenter_id, pool.host_or_cluster_id, record.datastore_name)
        ds_id = str(ds["id"])
        vdisks = R.find_virtual_disks(self.conn, vcenter_id, ds_id, record.disk_name)
        vd = R.pick_one(vdisks, kind="Virtual disk", name=record.disk_name, scope=f"datastore {record.datastore_name}")
        user_id = R.find_user_id(self.conn, record.assigned_user)
        return RecoveryPlanItem(
            record=record,
            desktop_pool_id=pool.id,
            access_group_id=pool.access_group_id,
            datastore_id=ds_id,
            virtual_disk_id=str(vd["id"]),
            user_id=user_id,
        )

    def plan(
        self,
        target_pool: str,
        target_vcenter: str,
        records: Sequence[DiskRecord],
        strict: bool = True,
    ) -> RecoveryPlan:
        """
        Resolve every id needed to recover `records` without changing anything.

        strict=True collects every unresolved record and raises PreCheckFailed
        listing them all. strict=False reports them as skipped.
        """
        pool, vcenter_id = self._resolve_target(target_pool, target_vcenter)

        result = RecoveryPlan()
        for record in records:
            try:
                result.items.append(self._resolve_record(pool, vcenter_id, record))
            except LookupFailed as e:
                result.skipped.append(SkippedRecord(record=record, reason=e.msg))
                Log.warn(Log.bind(self.logger, record=record.disk_name), f"Cannot resolve on target: {e.msg}")

        if strict and result.skipped:
            problems = [f"{s.record.disk_name}: {s.reason}" for s in result.skipped]
            raise PreCheckFailed(
                msg=f"Pre-check failed for {len(problems)} of {len(records)} record(s): {'; '.join(problems)}",
                context={"problems": problems},
            )
        return result

    def recover(
        self,
        target_pool: str,
        target_vcenter: str,
        records: Sequence[DiskRecord],
        plan: Optional[RecoveryPlan] = None,
    ) -> RecoveryReport:
        if plan is None:
            plan = self.plan(target_pool, target_vcenter, records, strict=False)

        report = RecoveryReport(skipped=list(plan.skipped))
        for item in plan.items:
            log = Log.bind(self.logger, record=item.record.disk_name)
            pd_id = self.conn.create_persistent_disk(
                virtual_disk_id=item.virtual_disk_id,
                access_group_id=item.access_group_id,
                user_id=item.user_id,
                desktop_pool_id=item.desktop_pool_id,
            )
            log.info("💾 Persistent disk created for %s (id=%s)", item.record.assigned_user, pd_id)
            self.conn.recreate_machine(pd_id)
            Log.ok(log, "Machine recreation requested")
            report.recovered.append(RecoveredDisk(record=item.record, persistent_disk_id=pd_id))

        self.logger.info(
            "📊 Recover finished: %d recovered, %d skipped", len(report.recovered), len(report.skipped)
        )
        return report
