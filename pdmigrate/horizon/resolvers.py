# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/horizon/resolvers.py
"""
Name -> id resolution against a Horizon connection.

Every resolver takes the connection explicitly and returns exactly one match,
raising EntityNotFound (zero) or AmbiguousMatch (more than one). Nothing is
cached: remote ids differ between Horizon instances and between phases.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, TypeVar

from ..core.exceptions import AmbiguousMatch, EntityNotFound
from ..core.utils import U
from .models import DesktopPool, Machine, PersistentDisk

T = TypeVar("T")


def pick_one(matches: Sequence[T], *, kind: str, name: str, scope: Optional[str] = None) -> T:
    where = f" in {scope}" if scope else ""
    if not matches:
        raise EntityNotFound(msg=f"{kind} {name!r} not found{where}", context={"kind": kind, "name": name})
    if len(matches) > 1:
        raise AmbiguousMatch(
            msg=f"{kind} {name!r} matches {len(matches)} entries{where}; refusing to guess",
            context={"kind": kind, "name": name, "matches": len(matches)},
        )
    return matches[0]


def principal_name(d: Dict[str, Any]) -> str:
    """Display name of a directory principal (`display_name`, falling back to `name`)."""
    return str(d.get("display_name") or d.get("name") or "")


def _principal_aliases(d: Dict[str, Any]) -> List[str]:
    names = [principal_name(d)]
    if d.get("domain") and d.get("name"):
        names.append(f"{d['domain']}\\{d['name']}")
    return names


def find_pool(conn: Any, name: str) -> DesktopPool:
    matches = [p for p in conn.list_desktop_pools() if U.same_name(p.name, name)]
    return pick_one(matches, kind="Desktop pool", name=name)


def find_vcenter_id(conn: Any, name: str) -> str:
    def names(vc: Dict[str, Any]) -> Iterable[str]:
        yield str(vc.get("server_name") or "")
        yield str(vc.get("name") or "")

    matches = [vc for vc in conn.list_virtual_centers() if any(U.same_name(n, name) for n in names(vc))]
    return str(pick_one(matches, kind="vCenter", name=name)["id"])


def find_datastore(conn: Any, vcenter_id: str, host_or_cluster_id: Optional[str], name: str) -> Dict[str, Any]:
    """Datastore named `name` in the (vCenter, host-or-cluster) scope."""
    stores = conn.list_datastores(vcenter_id, host_or_cluster_id)
    matches = [d for d in stores if U.same_name(d.get("name"), name)]
    return pick_one(matches, kind="Datastore", name=name, scope=f"vCenter {vcenter_id}")


def find_virtual_disks(conn: Any, vcenter_id: str, datastore_id: str, disk_name: str, *,
                       attached: Optional[bool] = None) -> List[Dict[str, Any]]:
    out = []
    for vd in conn.list_virtual_disks(vcenter_id, datastore_id):
        if not U.same_name(vd.get("name"), disk_name):
            continue
        if attached is not None and bool(vd.get("attached")) is not attached:
            continue
        out.append(vd)
    return out


def find_user_id(conn: Any, name: str) -> str:
    """
    Walk the paginated directory listing until the first principal named `name`.

    Later pages are never fetched once a match is found.
    """
    for principal in conn.iter_ad_users():
        if any(U.same_name(n, name) for n in _principal_aliases(principal)):
            return str(principal["id"])
    raise EntityNotFound(msg=f"User {name!r} not found in directory", context={"kind": "User", "name": name})


def find_user_ids(conn: Any, names: Iterable[str]) -> Set[str]:
    return {find_user_id(conn, n) for n in names}


def user_display_name(conn: Any, user_id: str) -> str:
    name = principal_name(conn.get_ad_user(user_id))
    if not name:
        raise EntityNotFound(msg=f"User id {user_id!r} has no resolvable name", context={"user_id": user_id})
    return name


def disks_by_name(conn: Any, name: str) -> List[PersistentDisk]:
    return [d for d in conn.list_persistent_disks() if U.same_name(d.name, name)]


def find_in_use_disk(conn: Any, name: str, user_id: str, *, pool_id: Optional[str] = None) -> PersistentDisk:
    """The IN_USE persistent disk `name` owned by `user_id` (and in `pool_id` when given)."""
    matches = [
        d for d in disks_by_name(conn, name)
        if d.exportable and d.user_id == user_id and (pool_id is None or d.desktop_pool_id == pool_id)
    ]
    return pick_one(matches, kind="Persistent disk", name=name, scope=f"user {user_id}")


def get_persistent_disk(conn: Any, disk_id: str) -> PersistentDisk:
    matches = [d for d in conn.list_persistent_disks() if d.id == disk_id]
    return pick_one(matches, kind="Persistent disk id", name=disk_id)


def machines_for_user(conn: Any, user_id: str, *, pool_id: Optional[str] = None) -> List[Machine]:
    out = []
    for m in conn.list_machines():
        if user_id not in m.user_ids:
            continue
        if pool_id is not None and m.desktop_pool_id != pool_id:
            continue
        out.append(m)
    return out
