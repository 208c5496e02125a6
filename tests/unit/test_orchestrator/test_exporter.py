# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import pytest

from pdmigrate.core.exceptions import AmbiguousMatch, EntityNotFound, InventoryError
from pdmigrate.horizon.models import DiskRecord
from pdmigrate.orchestrator.exporter import DiskExporter
from tests.fakes.fake_horizon import make_source
from tests.fakes.fake_logger import FakeLogger


def _export(hv, pool=None, users=None):
    return DiskExporter(FakeLogger(), hv).export(pool, users)


@pytest.mark.unit
class TestSelection:
    def test_all_in_use_user_owned_disks(self):
        records = _export(make_source())

        assert records == [
            DiskRecord("jdoe-disk", "ACME\\jdoe", "DS-Gold", "[DS-Gold] jdoe/jdoe-disk.vmdk"),
            DiskRecord("asmith-disk", "ACME\\asmith", "DS-Gold", "[DS-Gold] asmith/asmith-disk.vmdk"),
        ]

    def test_orphan_and_archived_disks_excluded(self):
        names = {r.disk_name for r in _export(make_source())}

        assert "orphan-disk" not in names
        assert "old-disk" not in names

    def test_pool_filter(self):
        assert [r.disk_name for r in _export(make_source(), pool="Finance")] == ["asmith-disk"]

    def test_user_filter(self):
        assert [r.disk_name for r in _export(make_source(), users=["acme\\jdoe"])] == ["jdoe-disk"]

    def test_filters_intersect(self):
        assert _export(make_source(), pool="Finance", users=["ACME\\jdoe"]) == []

    def test_no_mutations(self):
        hv = make_source()
        _export(hv)
        assert hv.mutations == []


@pytest.mark.unit
class TestFailures:
    def test_unknown_pool_filter(self):
        with pytest.raises(EntityNotFound, match="Desktop pool 'Marketing'"):
            _export(make_source(), pool="Marketing")

    def test_unknown_user_filter(self):
        with pytest.raises(EntityNotFound):
            _export(make_source(), users=["ACME\\ghost"])

    def test_detached_virtual_disk_aborts_export(self):
        hv = make_source()
        for vd in hv.virtual_disks[("vc-1", "ds-1")]:
            if vd["name"] == "asmith-disk":
                vd["attached"] = False

        with pytest.raises(EntityNotFound, match="Attached virtual disk 'asmith-disk'"):
            _export(hv)

    def test_duplicate_attached_virtual_disks(self):
        hv = make_source()
        hv.virtual_disks[("vc-1", "ds-1")].append(
            {"id": "vd-9", "name": "jdoe-disk", "path": "[DS-Gold] copy/jdoe-disk.vmdk", "attached": True}
        )

        with pytest.raises(AmbiguousMatch):
            _export(hv, users=["ACME\\jdoe"])

    def test_missing_path(self):
        hv = make_source()
        hv.virtual_disks[("vc-1", "ds-1")][0]["path"] = ""

        with pytest.raises(EntityNotFound, match="no backing path"):
            _export(hv, users=["ACME\\jdoe"])

    def test_unknown_datastore_id(self):
        hv = make_source()
        hv.disks[0]["datastore_id"] = "ds-404"

        with pytest.raises(EntityNotFound, match="Datastore 'ds-404'"):
            _export(hv, users=["ACME\\jdoe"])

    def test_duplicate_disk_names_rejected(self):
        hv = make_source()
        # Each lookup resolves, but two records now share a name on one datastore.
        hv.disks.append(
            {"id": "pd-9", "name": "JDOE-disk", "status": "IN_USE", "user_id": "u-3",
             "desktop_pool_id": "pool-a", "datastore_id": "ds-1", "vcenter_id": "vc-1"}
        )

        with pytest.raises(InventoryError, match="Duplicate"):
            _export(hv)
