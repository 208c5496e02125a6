# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import argparse
import io
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from pyVmomi import vim
from rich.console import Console

from pdmigrate.core.exceptions import EntityNotFound, Fatal
from pdmigrate.horizon.errors import ExitCode
from pdmigrate.horizon.models import DiskRecord
from pdmigrate.inventory.csv_inventory import read_inventory, write_inventory
from pdmigrate.orchestrator.orchestrator import Orchestrator
from tests.fakes.fake_horizon import make_source, make_target
from tests.fakes.fake_logger import FakeLogger


def _args(**kw):
    base = dict(
        workflow="export",
        source_server="cs-a",
        target_server="cs-b",
        hv_user="admin",
        hv_password="pw",
        hv_domain=None,
        hv_insecure=False,
        hv_timeout=60.0,
        page_size=100,
        pool=None,
        users=[],
        target_pool="Engineering-B",
        target_vcenter="vc-b",
        inventory=None,
        archive_poll_interval=15.0,
        archive_poll_max_interval=120.0,
        archive_timeout=3600.0,
        vcenter="vc-a",
        vc_user="administrator@vsphere.local",
        vc_password="pw",
        vc_port=443,
        vc_insecure=False,
        cluster="CL1",
        vm_group=None,
        vms=[],
        host_group=None,
        hosts=[],
        rule_name=None,
        rule_type="vm-host-affine",
        mandatory=False,
        prism="ntnx1",
        prism_user="admin",
        prism_password="pw",
        prism_port=9440,
        prism_insecure=False,
        snapshot_vms=[],
        snapshot_prefix="pdmigrate",
        output_csv=None,
    )
    base.update(kw)
    return argparse.Namespace(**base)


class World:
    """Maps server names to fake Horizon instances; records the client kwargs."""

    def __init__(self):
        self.servers = {"cs-a": make_source(), "cs-b": make_target()}
        self.kwargs = []

    def __call__(self, logger, server, user, password, **kw):
        self.kwargs.append((server, user, kw))
        return self.servers[server]


def _run(args, world=None, **kw):
    out = io.StringIO()
    orch = Orchestrator(
        FakeLogger(), args, console=Console(file=out, width=200), horizon_cls=world or World(), **kw
    )
    return orch.run(), out.getvalue()


@pytest.mark.unit
class TestHorizonWorkflows:
    def test_export(self, tmp_path):
        inv = tmp_path / "disks.csv"

        rc, out = _run(_args(workflow="export", inventory=str(inv), pool="Engineering"))

        assert rc == ExitCode.OK
        assert [r.disk_name for r in read_inventory(inv)] == ["jdoe-disk"]
        assert "jdoe-disk" in out

    def test_client_settings_passed_through(self, tmp_path):
        world = World()

        _run(_args(inventory=str(tmp_path / "x.csv"), hv_domain="ACME", page_size=50), world)

        server, user, kw = world.kwargs[0]
        assert (server, user) == ("cs-a", "admin")
        assert kw["domain"] == "ACME"
        assert kw["page_size"] == 50

    def test_recover_partial(self, tmp_path):
        inv = tmp_path / "disks.csv"
        write_inventory(inv, [
            DiskRecord("jdoe-disk", "ACME\\jdoe", "DS-Gold", "p1"),
            DiskRecord("ghost-disk", "ACME\\jdoe", "DS-Gold", "p2"),
        ])
        world = World()

        rc, out = _run(_args(workflow="recover", inventory=str(inv)), world)

        assert rc == ExitCode.PARTIAL
        assert world.servers["cs-b"].mutation_names() == ["create_persistent_disk", "recreate_machine"]
        assert "skipped" in out

    def test_migrate(self, tmp_path):
        world = World()
        inv = tmp_path / "batch.csv"

        rc, _ = _run(_args(workflow="migrate", inventory=str(inv)), world)

        assert rc == ExitCode.OK
        assert inv.exists()
        assert world.servers["cs-a"].mutation_names().count("delete_machine") == 2
        assert world.servers["cs-b"].mutation_names().count("recreate_machine") == 2

    def test_bad_poll_settings(self):
        with pytest.raises(Fatal):
            _run(_args(workflow="migrate", archive_poll_interval=60.0, archive_poll_max_interval=30.0))

    def test_unknown_workflow(self):
        with pytest.raises(Fatal, match="Unknown workflow") as ei:
            _run(_args(workflow="rebalance"))
        assert ei.value.code == 2


class FakeVCenter:
    def __init__(self, logger, host, user, password, **kw):
        self.cluster = MagicMock()
        self.cluster.name = "CL1"
        self.cluster.configurationEx = SimpleNamespace(group=[], rule=[])
        self.waited = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def find_by_name(self, vimtype, name):
        if vimtype is vim.ClusterComputeResource:
            return self.cluster
        return vimtype(f"moid-{name}")

    def wait_for_task(self, task, *, what="task"):
        self.waited.append(what)


class FakePrism:
    missing = ("gone-vm",)

    def __init__(self, logger, host, user, password, **kw):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def find_vm(self, name):
        if name in self.missing:
            raise EntityNotFound(msg=f"VM {name!r} not found")
        return {"uuid": f"uuid-{name}"}

    def snapshot_vm(self, vm_uuid, snapshot_name):
        return "t-1"

    def wait_for_task(self, task_uuid, *, what="task"):
        return {"progress_status": "SUCCEEDED"}

    def list_unprotected_vms(self):
        return [{"vm_name": "web-01", "uuid": "u1"}]


@pytest.mark.unit
class TestOtherWorkflows:
    def test_drs_rule(self):
        rc, out = _run(_args(workflow="drs-rule", host_group="Rack-A", hosts=["esx-01"]), vcenter_cls=FakeVCenter)

        assert rc == ExitCode.OK
        assert "add Rack-A" in out

    def test_snapshot_partial(self):
        rc, out = _run(_args(workflow="vm-snapshot", snapshot_vms=["app-01", "gone-vm"]), prism_cls=FakePrism)

        assert rc == ExitCode.PARTIAL
        assert "app-01" in out and "failed" in out

    def test_snapshot_all_ok(self):
        rc, _ = _run(_args(workflow="vm-snapshot", snapshot_vms=["app-01"]), prism_cls=FakePrism)
        assert rc == ExitCode.OK

    def test_unprotected_vms_csv(self, tmp_path):
        out_csv = tmp_path / "unprotected.csv"

        rc, out = _run(_args(workflow="unprotected-vms", output_csv=str(out_csv)), prism_cls=FakePrism)

        assert rc == ExitCode.OK
        assert out_csv.read_text().splitlines() == ["VmName,VmUuid", "web-01,u1"]
        assert "web-01" in out
