# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/orchestrator/orchestrator.py

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from rich.console import Console

from ..core.exceptions import Fatal
from ..core.logger import Log
from ..core.retry import PollPolicy
from ..horizon.client import HorizonClient
from ..horizon.errors import ExitCode
from ..horizon.models import RecoveryReport
from ..inventory.csv_inventory import read_inventory, write_inventory
from ..nutanix.client import PrismClient
from ..nutanix.snapshot import SnapshotRunner, unprotected_vms, write_unprotected_csv
from ..vcenter.client import VCenterClient
from ..vcenter.drs import DrsRuleManager
from . import report
from .exporter import DiskExporter
from .migrator import DiskMigrator, MigrationOptions
from .recoverer import DiskRecoverer


class Orchestrator:
    """
    Runs one workflow selected by args.workflow and returns the exit code.

    Client classes are injectable so tests can swap in fakes.
    """

    def __init__(
        self,
        logger: logging.Logger,
        args: argparse.Namespace,
        *,
        console: Optional[Console] = None,
        horizon_cls: Callable[..., Any] = HorizonClient,
        vcenter_cls: Callable[..., Any] = VCenterClient,
        prism_cls: Callable[..., Any] = PrismClient,
    ):
        self.logger = logger
        self.args = args
        self.console = console
        self.horizon_cls = horizon_cls
        self.vcenter_cls = vcenter_cls
        self.prism_cls = prism_cls

        self._handlers: Dict[str, Callable[[], int]] = {
            "export": self._export,
            "recover": self._recover,
            "migrate": self._migrate,
            "drs-rule": self._drs_rule,
            "vm-snapshot": self._vm_snapshot,
            "unprotected-vms": self._unprotected_vms,
        }

        Log.trace(self.logger, "🧠 Orchestrator init: workflow=%r", getattr(args, "workflow", None))

    def run(self) -> int:
        wf = getattr(self.args, "workflow", None)
        handler = self._handlers.get(wf or "")
        if handler is None:
            raise Fatal(2, f"Unknown workflow: {wf!r}")
        Log.banner(self.logger, f"pdmigrate {wf}")
        return handler()

    # Connections

    def _horizon(self, server: str) -> Any:
        a = self.args
        return self.horizon_cls(
            self.logger,
            server,
            a.hv_user,
            a.hv_password,
            domain=getattr(a, "hv_domain", None),
            insecure=bool(getattr(a, "hv_insecure", False)),
            timeout=getattr(a, "hv_timeout", None),
            page_size=int(getattr(a, "page_size", 100)),
        )

    def _connector(self, server: str) -> Callable[[], Any]:
        """Factory returning a fresh, not yet connected client per phase."""
        return lambda: self._horizon(server)

    def _poll_policy(self) -> PollPolicy:
        a = self.args
        try:
            return PollPolicy(
                interval_s=float(a.archive_poll_interval),
                max_interval_s=float(a.archive_poll_max_interval),
                timeout_s=None if a.archive_timeout is None else float(a.archive_timeout),
            )
        except ValueError as e:
            raise Fatal(2, f"Invalid archive poll settings: {e}")

    @staticmethod
    def _recovery_rc(rep: RecoveryReport) -> int:
        return int(ExitCode.OK if rep.complete else ExitCode.PARTIAL)

    # Horizon workflows

    def _export(self) -> int:
        a = self.args
        with self._horizon(a.source_server) as conn:
            records = DiskExporter(self.logger, conn).export(a.pool, a.users)
        write_inventory(Path(a.inventory), records, logger=self.logger)
        report.show(report.export_table(records), self.console)
        return int(ExitCode.OK)

    def _recover(self) -> int:
        a = self.args
        records = read_inventory(Path(a.inventory), logger=self.logger)
        with self._horizon(a.target_server) as conn:
            rep = DiskRecoverer(self.logger, conn).recover(a.target_pool, a.target_vcenter, records)
        report.show(report.recovery_table(rep), self.console)
        return self._recovery_rc(rep)

    def _migrate(self) -> int:
        a = self.args
        migrator = DiskMigrator(
            self.logger,
            self._connector(a.source_server),
            self._connector(a.target_server),
            MigrationOptions(poll=self._poll_policy()),
        )
        rep = migrator.run(
            a.target_pool,
            a.target_vcenter,
            pool_filter=a.pool,
            user_filter=a.users,
            inventory_path=Path(a.inventory) if a.inventory else None,
        )
        report.show(report.recovery_table(rep), self.console)
        return self._recovery_rc(rep)

    # vCenter

    def _drs_rule(self) -> int:
        a = self.args
        vc = self.vcenter_cls(
            self.logger, a.vcenter, a.vc_user, a.vc_password, port=int(a.vc_port), insecure=bool(a.vc_insecure)
        )
        with vc:
            change = DrsRuleManager(self.logger, vc).apply(
                a.cluster,
                vm_group=a.vm_group,
                vms=a.vms,
                host_group=a.host_group,
                hosts=a.hosts,
                rule_name=a.rule_name,
                rule_type=a.rule_type,
                mandatory=bool(a.mandatory),
            )
        report.show(report.drs_table(change), self.console)
        return int(ExitCode.OK)

    # Nutanix

    def _prism(self) -> Any:
        a = self.args
        return self.prism_cls(
            self.logger, a.prism, a.prism_user, a.prism_password, port=int(a.prism_port), insecure=bool(a.prism_insecure)
        )

    def _vm_snapshot(self) -> int:
        a = self.args
        with self._prism() as prism:
            results = SnapshotRunner(self.logger, prism).snapshot(a.snapshot_vms, a.snapshot_prefix)
        report.show(report.snapshot_table(results), self.console)
        return int(ExitCode.OK if all(r.ok for r in results) else ExitCode.PARTIAL)

    def _unprotected_vms(self) -> int:
        a = self.args
        with self._prism() as prism:
            rows = unprotected_vms(prism)
        if a.output_csv:
            write_unprotected_csv(Path(a.output_csv), rows, logger=self.logger)
        report.show(report.unprotected_table(rows), self.console)
        return int(ExitCode.OK)
