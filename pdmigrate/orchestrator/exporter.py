# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/orchestrator/exporter.py

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from ..core.exceptions import EntityNotFound
from ..core.logger import Log
from ..horizon import resolvers as R
from ..horizon.models import DesktopPool, DiskRecord, PersistentDisk, validate_batch


class DiskExporter:
    """
    Builds the DiskRecord batch for every in-use, user-owned persistent disk
    on one Horizon connection.

    The export is all-or-nothing: a disk whose datastore, owner or backing
    path cannot be resolved aborts the whole export.
    """

    def __init__(self, logger: logging.Logger, conn: Any):
        self.logger = logger
        self.conn = conn

    def export(self, pool_filter: Optional[str] = None, user_filter: Optional[Iterable[str]] = None) -> List[DiskRecord]:
        pool_id: Optional[str] = None
        if pool_filter:
            pool_id = R.find_pool(self.conn, pool_filter).id
            Log.trace(self.logger, "🔎 pool filter %r -> %s", pool_filter, pool_id)

        user_ids: Optional[Set[str]] = None
        names = [u for u in (user_filter or []) if u]
        if names:
            user_ids = R.find_user_ids(self.conn, names)
            Log.trace(self.logger, "🔎 user filter %r -> %s", names, sorted(user_ids))

        selected = [d for d in self.conn.list_persistent_disks() if self._wanted(d, pool_id, user_ids)]
        self.logger.info("📦 %d persistent disk(s) selected for export", len(selected))

        pools = {p.id: p for p in self.conn.list_desktop_pools()}
        datastores: Dict[tuple, List[Dict[str, Any]]] = {}
        records = [self._describe(d, pools, datastores) for d in selected]
        validate_batch(records)
        return records

    @staticmethod
    def _wanted(d: PersistentDisk, pool_id: Optional[str], user_ids: Optional[Set[str]]) -> bool:
        if not d.exportable:
            return False
        if pool_id is not None and d.desktop_pool_id != pool_id:
            return False
        if user_ids is not None and d.user_id not in user_ids:
            return False
        return True

    def _describe(
        self,
        disk: PersistentDisk,
        pools: Dict[str, DesktopPool],
        datastores: Dict[tuple, List[Dict[str, Any]]],
    ) -> DiskRecord:
        log = Log.bind(self.logger, record=disk.name)
        pool = pools.get(disk.desktop_pool_id or "")
        vcenter_id = disk.vcenter_id or (pool.vcenter_id if pool else None)
        if not vcenter_id:
            raise EntityNotFound(msg=f"Persistent disk {disk.name!r} has no vCenter reference", context={"disk": disk.name})
        host_or_cluster_id = pool.host_or_cluster_id if pool else None

        user = R.user_display_name(self.conn, disk.user_id or "")

        scope = (vcenter_id, host_or_cluster_id)
        if scope not in datastores:
            datastores[scope] = self.conn.list_datastores(vcenter_id, host_or_cluster_id)
        matches = [ds for ds in datastores[scope] if str(ds.get("id")) == str(disk.datastore_id)]
        ds = R.pick_one(matches, kind="Datastore", name=str(disk.datastore_id), scope=f"vCenter {vcenter_id}")
        ds_name = str(ds.get("name") or "")

        vdisks = R.find_virtual_disks(self.conn, vcenter_id, str(ds["id"]), disk.name, attached=True)
        vd = R.pick_one(vdisks, kind="Attached virtual disk", name=disk.name, scope=f"datastore {ds_name}")
        path = str(vd.get("path") or "")
        if not path:
            raise EntityNotFound(msg=f"Virtual disk {disk.name!r} has no backing path", context={"disk": disk.name})

        log.debug("user=%s datastore=%s path=%s", user, ds_name, path)
        return DiskRecord(disk_name=disk.name, assigned_user=user, datastore_name=ds_name, path=path)
