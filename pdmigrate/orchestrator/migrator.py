# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/orchestrator/migrator.py
"""
Source -> target persistent-disk migration.

Three phases, each with its own connection:

  pre-check  export on the source, dry-resolve every record on both sides
  source     delete each owning machine (archiving the disk), wait for the
             disk to settle, then drop the disk from the source inventory
  target     recover the batch on the target pool

Nothing is changed anywhere until the pre-check has passed. A failure in the
source phase stops the migration; records already released on the source are
recovered by running `recover` with the inventory written after pre-check.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, ContextManager, Dict, Iterable, List, Optional, Tuple

from ..core.exceptions import LookupFailed, PreCheckFailed
from ..core.logger import Log
from ..core.logging_utils import log_step
from ..core.retry import Clock, PollPolicy, Sleeper, poll_until
from ..horizon import resolvers as R
from ..horizon.models import DiskRecord, Machine, PersistentDisk, RecoveryReport
from ..inventory.csv_inventory import write_inventory
from .exporter import DiskExporter
from .recoverer import DiskRecoverer

ConnectionFactory = Callable[[], ContextManager[Any]]


@dataclass
class MigrationOptions:
    poll: PollPolicy = field(default_factory=PollPolicy)
    sleep: Sleeper = time.sleep
    clock: Clock = time.monotonic


class DiskMigrator:
    def __init__(
        self,
        logger: logging.Logger,
        source_connect: ConnectionFactory,
        target_connect: ConnectionFactory,
        options: Optional[MigrationOptions] = None,
    ):
        self.logger = logger
        self.source_connect = source_connect
        self.target_connect = target_connect
        self.options = options or MigrationOptions()

    def run(
        self,
        target_pool: str,
        target_vcenter: str,
        pool_filter: Optional[str] = None,
        user_filter: Optional[Iterable[str]] = None,
        inventory_path: Optional[Path] = None,
    ) -> RecoveryReport:
        users = list(user_filter or [])

        with log_step(self.logger, "Pre-check"):
            records = self.precheck(target_pool, target_vcenter, pool_filter, users)
        if not records:
            self.logger.warning("Nothing to migrate: no in-use persistent disks matched")
            return RecoveryReport()
        if inventory_path:
            write_inventory(inventory_path, records, logger=self.logger)

        with log_step(self.logger, f"Source phase ({len(records)} disk(s))"):
            self.release_on_source(records, pool_filter)

        with log_step(self.logger, "Target phase"):
            with self.target_connect() as conn:
                return DiskRecoverer(Log.bind(self.logger, phase="target"), conn).recover(
                    target_pool, target_vcenter, records
                )

    def precheck(
        self,
        target_pool: str,
        target_vcenter: str,
        pool_filter: Optional[str],
        user_filter: List[str],
    ) -> List[DiskRecord]:
        """
        Export on the source, then dry-resolve the batch on both sides.

        On the source every record must map to exactly one in-use disk of its
        owner and exactly one machine; on the target every record must be
        recoverable. Any problem raises PreCheckFailed before anything changes.
        """
        log = Log.bind(self.logger, phase="precheck")
        with self.source_connect() as conn:
            records = DiskExporter(log, conn).export(pool_filter, user_filter)
            if not records:
                return records
            self._check_source(conn, records, pool_filter)
        with self.target_connect() as conn:
            plan = DiskRecoverer(log, conn).plan(target_pool, target_vcenter, records, strict=True)
        Log.ok(self.logger, f"Pre-check passed: {len(plan.items)} record(s) resolvable on target")
        return records

    def _check_source(self, conn: Any, records: List[DiskRecord], pool_filter: Optional[str]) -> None:
        pool_id = R.find_pool(conn, pool_filter).id if pool_filter else None
        problems = []
        owners: Dict[str, str] = {}
        for record in records:
            try:
                _, machine = self._resolve_source(conn, record, pool_id)
            except LookupFailed as e:
                problems.append(f"{record.disk_name}: {e.msg}")
                continue
            # One machine deletion archives every disk it holds.
            if machine.id in owners:
                problems.append(f"{record.disk_name}: machine {machine.name or machine.id} also holds {owners[machine.id]}")
            else:
                owners[machine.id] = record.disk_name
        if problems:
            raise PreCheckFailed(
                msg=f"Pre-check failed on source for {len(problems)} of {len(records)} record(s): {'; '.join(problems)}",
                context={"problems": problems},
            )

    @staticmethod
    def _resolve_source(conn: Any, record: DiskRecord, pool_id: Optional[str]) -> Tuple[PersistentDisk, Machine]:
        user_id = R.find_user_id(conn, record.assigned_user)
        disk = R.find_in_use_disk(conn, record.disk_name, user_id, pool_id=pool_id)
        machine = R.pick_one(
            R.machines_for_user(conn, user_id, pool_id=disk.desktop_pool_id or pool_id),
            kind="Machine for user",
            name=record.assigned_user,
        )
        return disk, machine

    def release_on_source(self, records: List[DiskRecord], pool_filter: Optional[str]) -> None:
        with self.source_connect() as conn:
            pool_id = R.find_pool(conn, pool_filter).id if pool_filter else None
            for record in records:
                self._release_one(conn, record, pool_id)

    def _release_one(self, conn: Any, record: DiskRecord, pool_id: Optional[str]) -> None:
        log = Log.bind(self.logger, phase="source", record=record.disk_name)

        # Pin the disk id before the machine goes away; afterwards the name may
        # also match archived disks of other users or datastores.
        disk, machine = self._resolve_source(conn, record, pool_id)
        log.info("🗑️  Deleting machine %s (archiving its persistent disk)", machine.name or machine.id)
        conn.delete_machine(machine.id, delete_from_disk=True, archive_persistent_disk=True)

        disk = self._wait_settled(conn, disk, log)
        log.info("🔗 Removing persistent disk %s from source inventory (status %s)", disk.id, disk.status)
        conn.delete_persistent_disk(disk.id, delete_from_disk=False)
        Log.ok(log, "Released on source")

    def _wait_settled(self, conn: Any, disk: PersistentDisk, log: Any) -> PersistentDisk:
        return poll_until(
            lambda: R.get_persistent_disk(conn, disk.id),
            lambda d: d.status.is_settled,
            policy=self.options.poll,
            what=f"persistent disk {disk.name} to finish archiving",
            describe=lambda d: str(d.status),
            logger=log,
            sleep=self.options.sleep,
            clock=self.options.clock,
        )
