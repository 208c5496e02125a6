# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/horizon/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import InventoryError


class PersistentDiskStatus(str, Enum):
    IN_USE = "IN_USE"
    ARCHIVING = "ARCHIVING"
    ARCHIVED = "ARCHIVED"
    DETACHED = "DETACHED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "PersistentDiskStatus":
        s = str(value or "").strip().upper()
        try:
            return cls(s)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_settled(self) -> bool:
        """True once the server is done moving the disk out of IN_USE/ARCHIVING."""
        return self not in (PersistentDiskStatus.IN_USE, PersistentDiskStatus.ARCHIVING)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class DiskRecord:
    """
    One exportable/importable persistent disk.

    A plain value: it carries names only, never server-side ids, so the same
    record can be replayed against any Horizon instance.
    """
    disk_name: str
    assigned_user: str
    datastore_name: str
    path: str


def validate_batch(records: Sequence[DiskRecord]) -> None:
    """Raise InventoryError when a disk name repeats on the same datastore."""
    seen: Dict[Tuple[str, str], int] = {}
    dups: List[str] = []
    for i, r in enumerate(records):
        key = (r.disk_name.casefold(), r.datastore_name.casefold())
        if key in seen:
            dups.append(f"{r.disk_name!r} on {r.datastore_name!r} (rows {seen[key] + 1} and {i + 1})")
        else:
            seen[key] = i
    if dups:
        raise InventoryError(
            msg=f"Duplicate disk entries in batch: {', '.join(dups)}",
            context={"duplicates": len(dups)},
        )


@dataclass(frozen=True)
class DesktopPool:
    id: str
    name: str
    access_group_id: Optional[str] = None
    vcenter_id: Optional[str] = None
    host_or_cluster_id: Optional[str] = None

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "DesktopPool":
        prov = d.get("provisioning_settings") or {}
        return cls(
            id=str(d["id"]),
            name=str(d.get("name") or ""),
            access_group_id=d.get("access_group_id"),
            vcenter_id=d.get("vcenter_id"),
            host_or_cluster_id=prov.get("host_or_cluster_id"),
        )


@dataclass(frozen=True)
class PersistentDisk:
    id: str
    name: str
    status: PersistentDiskStatus
    user_id: Optional[str] = None
    desktop_pool_id: Optional[str] = None
    datastore_id: Optional[str] = None
    vcenter_id: Optional[str] = None

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "PersistentDisk":
        return cls(
            id=str(d["id"]),
            name=str(d.get("name") or ""),
            status=PersistentDiskStatus.parse(d.get("status")),
            user_id=d.get("user_id") or None,
            desktop_pool_id=d.get("desktop_pool_id") or None,
            datastore_id=d.get("datastore_id") or None,
            vcenter_id=d.get("vcenter_id") or None,
        )

    @property
    def exportable(self) -> bool:
        return self.status is PersistentDiskStatus.IN_USE and bool(self.user_id)


@dataclass(frozen=True)
class Machine:
    id: str
    name: str
    desktop_pool_id: Optional[str] = None
    user_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> "Machine":
        user_ids = list(d.get("user_ids") or [])
        if not user_ids and d.get("user_id"):
            user_ids = [d["user_id"]]
        return cls(
            id=str(d["id"]),
            name=str(d.get("name") or ""),
            desktop_pool_id=d.get("desktop_pool_id"),
            user_ids=[str(u) for u in user_ids],
        )


@dataclass(frozen=True)
class RecoveryPlanItem:
    """Every target-side id needed to re-create one record."""
    record: DiskRecord
    desktop_pool_id: str
    access_group_id: Optional[str]
    datastore_id: str
    virtual_disk_id: str
    user_id: str


@dataclass(frozen=True)
class SkippedRecord:
    record: DiskRecord
    reason: str


@dataclass
class RecoveryPlan:
    items: List[RecoveryPlanItem] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.skipped


@dataclass(frozen=True)
class RecoveredDisk:
    record: DiskRecord
    persistent_disk_id: str


@dataclass
class RecoveryReport:
    recovered: List[RecoveredDisk] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped
