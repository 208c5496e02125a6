# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import pytest

from pdmigrate.core.exceptions import AmbiguousMatch, EntityNotFound
from pdmigrate.horizon import resolvers as R
from pdmigrate.horizon.models import PersistentDiskStatus
from tests.fakes.fake_horizon import make_source, make_target


@pytest.mark.unit
class TestPickOne:
    def test_single(self):
        assert R.pick_one(["a"], kind="Pool", name="a") == "a"

    def test_none(self):
        with pytest.raises(EntityNotFound, match="Pool 'x' not found in vCenter vc-1"):
            R.pick_one([], kind="Pool", name="x", scope="vCenter vc-1")

    def test_many(self):
        with pytest.raises(AmbiguousMatch, match="refusing to guess") as ei:
            R.pick_one(["a", "b"], kind="Pool", name="a")
        assert ei.value.context["matches"] == 2


@pytest.mark.unit
class TestLookups:
    def test_pool_case_insensitive(self):
        assert R.find_pool(make_source(), "engineering").id == "pool-a"

    def test_vcenter_by_server_or_short_name(self):
        hv = make_target()
        assert R.find_vcenter_id(hv, "VC-B.example.com") == "vc-9"
        assert R.find_vcenter_id(hv, "vc-b") == "vc-9"

    def test_datastore_scoped_to_cluster(self):
        hv = make_source()
        assert R.find_datastore(hv, "vc-1", "cl-1", "ds-gold")["id"] == "ds-1"
        with pytest.raises(EntityNotFound):
            R.find_datastore(hv, "vc-1", "other-cluster", "DS-Gold")

    def test_virtual_disks_attached_filter(self):
        hv = make_target()
        assert [v["id"] for v in R.find_virtual_disks(hv, "vc-9", "tds-1", "JDOE-DISK")] == ["tvd-1"]
        assert R.find_virtual_disks(hv, "vc-9", "tds-1", "jdoe-disk", attached=True) == []

    def test_user_lookup_stops_at_first_match(self):
        hv = make_source()

        assert R.find_user_id(hv, "acme\\jdoe") == "u-1"
        assert hv.user_pages_fetched == 1

    def test_user_lookup_walks_pages(self):
        hv = make_source()

        assert R.find_user_id(hv, "ACME\\bwayne") == "u-3"
        assert hv.user_pages_fetched == 2

    def test_user_lookup_by_domain_and_name(self):
        users = [{"id": "u-9", "name": "kkent", "domain": "ACME", "display_name": "Clark Kent"}]
        hv = make_source(users=users)

        assert R.find_user_id(hv, "ACME\\kkent") == "u-9"
        assert R.find_user_id(hv, "clark kent") == "u-9"

    def test_unknown_user(self):
        with pytest.raises(EntityNotFound, match="not found in directory"):
            R.find_user_id(make_source(), "ACME\\nobody")

    def test_display_name(self):
        hv = make_source()
        assert R.user_display_name(hv, "u-2") == "ACME\\asmith"
        with pytest.raises(EntityNotFound):
            R.user_display_name(hv, "u-404")

    def test_disks_by_name(self):
        disks = R.disks_by_name(make_source(), "Old-Disk")
        assert [d.id for d in disks] == ["pd-4"]
        assert disks[0].status is PersistentDiskStatus.ARCHIVED

    def test_in_use_disk_ignores_archived_namesake(self):
        hv = make_source()
        hv.disks.append({"id": "pd-9", "name": "jdoe-disk", "status": "ARCHIVED", "user_id": "u-1",
                         "desktop_pool_id": "pool-a", "datastore_id": "ds-2", "vcenter_id": "vc-1"})
        assert R.find_in_use_disk(hv, "JDOE-disk", "u-1").id == "pd-1"
        assert R.find_in_use_disk(hv, "jdoe-disk", "u-1", pool_id="pool-a").id == "pd-1"

    def test_in_use_disk_scoped_to_owner_and_pool(self):
        hv = make_source()
        with pytest.raises(EntityNotFound, match="in user u-2"):
            R.find_in_use_disk(hv, "jdoe-disk", "u-2")
        with pytest.raises(EntityNotFound):
            R.find_in_use_disk(hv, "jdoe-disk", "u-1", pool_id="pool-b")

    def test_in_use_disk_ambiguous(self):
        hv = make_source()
        hv.disks.append({"id": "pd-8", "name": "jdoe-disk", "status": "IN_USE", "user_id": "u-1",
                         "desktop_pool_id": "pool-a", "datastore_id": "ds-2", "vcenter_id": "vc-1"})
        with pytest.raises(AmbiguousMatch):
            R.find_in_use_disk(hv, "jdoe-disk", "u-1")

    def test_get_persistent_disk(self):
        hv = make_source()
        assert R.get_persistent_disk(hv, "pd-4").name == "old-disk"
        with pytest.raises(EntityNotFound):
            R.get_persistent_disk(hv, "pd-404")

    def test_machines_for_user(self):
        hv = make_source()
        assert [m.id for m in R.machines_for_user(hv, "u-1")] == ["m-1"]
        assert R.machines_for_user(hv, "u-1", pool_id="pool-b") == []
