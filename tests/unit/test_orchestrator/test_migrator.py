# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import pytest

from pdmigrate.core.exceptions import EntityNotFound, PollTimeout, PreCheckFailed
from pdmigrate.core.retry import PollPolicy
from pdmigrate.inventory.csv_inventory import read_inventory
from pdmigrate.orchestrator.migrator import DiskMigrator, MigrationOptions
from tests.fakes.fake_horizon import make_source, make_target
from tests.fakes.fake_logger import FakeLogger


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, s):
        self.sleeps.append(s)
        self.now += s


def _migrator(source, target, clock=None, poll=None):
    clock = clock or FakeClock()
    opts = MigrationOptions(poll=poll or PollPolicy(), sleep=clock.sleep, clock=clock)
    return DiskMigrator(FakeLogger(), lambda: source, lambda: target, opts)


@pytest.mark.unit
class TestHappyPath:
    def test_full_migration(self):
        source, target = make_source(), make_target()

        report = _migrator(source, target).run("Engineering-B", "vc-b")

        assert report.complete
        assert [r.record.disk_name for r in report.recovered] == ["jdoe-disk", "asmith-disk"]
        assert source.mutations == [
            ("delete_machine", {"machine_id": "m-1", "delete_from_disk": True, "archive_persistent_disk": True}),
            ("delete_persistent_disk", {"persistent_disk_id": "pd-1", "delete_from_disk": False}),
            ("delete_machine", {"machine_id": "m-2", "delete_from_disk": True, "archive_persistent_disk": True}),
            ("delete_persistent_disk", {"persistent_disk_id": "pd-2", "delete_from_disk": False}),
        ]
        assert target.mutation_names() == ["create_persistent_disk", "recreate_machine"] * 2

    def test_each_phase_opens_its_own_session(self):
        source, target = make_source(), make_target()

        _migrator(source, target).run("Engineering-B", "vc-b")

        assert (source.connects, target.connects) == (2, 2)
        assert source.open_sessions == 0 and target.open_sessions == 0

    def test_waits_for_archiving_with_backoff(self):
        source, target = make_source(archive_polls=3), make_target()
        clock = FakeClock()

        _migrator(source, target, clock).run("Engineering-B", "vc-b", user_filter=["ACME\\jdoe"])

        assert clock.sleeps == [15.0, 30.0]
        assert source.mutation_names() == ["delete_machine", "delete_persistent_disk"]

    def test_pool_filter_scopes_machine_lookup(self):
        source, target = make_source(), make_target()
        # Same user also owns a machine in another pool.
        source.machines.append({"id": "m-9", "name": "eng-009", "desktop_pool_id": "pool-a", "user_ids": ["u-2"]})

        report = _migrator(source, target).run("Engineering-B", "vc-b", pool_filter="Finance")

        assert [r.record.disk_name for r in report.recovered] == ["asmith-disk"]
        assert source.mutations[0][1]["machine_id"] == "m-2"

    def test_inventory_written_before_changes(self, tmp_path):
        source, target = make_source(), make_target()
        inv = tmp_path / "batch.csv"

        _migrator(source, target).run("Engineering-B", "vc-b", inventory_path=inv)

        assert [r.disk_name for r in read_inventory(inv)] == ["jdoe-disk", "asmith-disk"]

    def test_nothing_selected(self):
        source, target = make_source(), make_target()

        report = _migrator(source, target).run("Engineering-B", "vc-b", pool_filter="Finance", user_filter=["ACME\\jdoe"])

        assert report.recovered == [] and report.skipped == []
        assert source.mutations == []
        assert target.connects == 0


@pytest.mark.unit
class TestFailures:
    def test_precheck_failure_changes_nothing(self, tmp_path):
        source, target = make_source(), make_target()
        target.virtual_disks[("vc-9", "tds-1")].pop()
        inv = tmp_path / "batch.csv"

        with pytest.raises(PreCheckFailed, match="asmith-disk"):
            _migrator(source, target).run("Engineering-B", "vc-b", inventory_path=inv)

        assert source.mutations == []
        assert target.mutations == []
        assert not inv.exists()

    def test_archive_timeout_stops_before_target(self):
        source, target = make_source(archive_polls=1000), make_target()
        clock = FakeClock()
        poll = PollPolicy(interval_s=1, max_interval_s=1, timeout_s=5)

        with pytest.raises(PollTimeout, match="jdoe-disk"):
            _migrator(source, target, clock, poll).run("Engineering-B", "vc-b")

        assert source.mutation_names() == ["delete_machine"]
        assert target.mutations == []
        assert clock.now <= 5

    def test_missing_machine_fails_precheck(self):
        source, target = make_source(), make_target()
        source.machines = [m for m in source.machines if m["id"] != "m-2"]

        with pytest.raises(PreCheckFailed, match=r"Machine for user .* not found"):
            _migrator(source, target).run("Engineering-B", "vc-b")

        assert source.mutations == []
        assert target.connects == 0
        assert source.open_sessions == 0

    def test_ambiguous_machine_fails_precheck(self):
        source, target = make_source(), make_target()
        source.machines.append({"id": "m-7", "name": "fin-007", "desktop_pool_id": "pool-b", "user_ids": ["u-2"]})

        with pytest.raises(PreCheckFailed, match="matches 2 entries"):
            _migrator(source, target).run("Engineering-B", "vc-b")

        assert source.mutations == []
        assert target.mutations == []

    def test_two_disks_on_one_machine_fail_precheck(self):
        source, target = make_source(), make_target()
        source.disks.append({"id": "pd-5", "name": "jdoe-data", "status": "IN_USE", "user_id": "u-1",
                             "desktop_pool_id": "pool-a", "datastore_id": "ds-1", "vcenter_id": "vc-1"})
        source.virtual_disks[("vc-1", "ds-1")].append(
            {"id": "vd-5", "name": "jdoe-data", "path": "[DS-Gold] jdoe/jdoe-data.vmdk", "attached": True}
        )

        with pytest.raises(PreCheckFailed, match="jdoe-data: machine eng-001 also holds jdoe-disk"):
            _migrator(source, target).run("Engineering-B", "vc-b")

        assert source.mutations == []
        assert target.connects == 0

    def test_machine_gone_after_precheck_stops_source_phase(self):
        source, target = make_source(), make_target()
        sessions = []

        def source_connect():
            sessions.append(1)
            if len(sessions) == 2:
                source.machines = [m for m in source.machines if m["id"] != "m-2"]
            return source

        clock = FakeClock()
        migrator = DiskMigrator(
            FakeLogger(), source_connect, lambda: target, MigrationOptions(sleep=clock.sleep, clock=clock)
        )
        with pytest.raises(EntityNotFound, match="Machine for user"):
            migrator.run("Engineering-B", "vc-b")

        assert source.mutation_names() == ["delete_machine", "delete_persistent_disk"]
        assert target.mutations == []
        assert source.open_sessions == 0


@pytest.mark.unit
class TestSourceDiskIdentity:
    def _with_archived_namesake(self):
        source = make_source()
        # Older disk with the same name, archived, on another datastore, owned by someone else.
        source.disks.append(
            {"id": "pd-9", "name": "asmith-disk", "status": "ARCHIVED", "user_id": "u-3",
             "desktop_pool_id": "pool-b", "datastore_id": "ds-2", "vcenter_id": "vc-1"}
        )
        return source

    def test_archived_namesake_is_ignored(self):
        source, target = self._with_archived_namesake(), make_target()

        report = _migrator(source, target).run("Engineering-B", "vc-b")

        assert report.complete
        assert [r.record.disk_name for r in report.recovered] == ["jdoe-disk", "asmith-disk"]
        deleted = [kw["persistent_disk_id"] for name, kw in source.mutations if name == "delete_persistent_disk"]
        assert deleted == ["pd-1", "pd-2"]
        assert any(d["id"] == "pd-9" for d in source.disks)

    def test_disk_of_other_user_is_not_touched(self):
        source, target = self._with_archived_namesake(), make_target()

        _migrator(source, target).run("Engineering-B", "vc-b", user_filter=["ACME\\asmith"])

        assert source.mutations == [
            ("delete_machine", {"machine_id": "m-2", "delete_from_disk": True, "archive_persistent_disk": True}),
            ("delete_persistent_disk", {"persistent_disk_id": "pd-2", "delete_from_disk": False}),
        ]
