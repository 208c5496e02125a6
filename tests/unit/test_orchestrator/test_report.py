# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import io

import pytest
from rich.console import Console

from pdmigrate.horizon.models import DiskRecord, RecoveredDisk, RecoveryReport, SkippedRecord
from pdmigrate.orchestrator import report


def _render(table):
    out = io.StringIO()
    report.show(table, Console(file=out, width=200))
    return out.getvalue()


@pytest.mark.unit
class TestTables:
    def test_datastore_brackets_are_literal(self):
        rec = DiskRecord("jdoe-disk", "ACME\\jdoe", "datastore1", "[datastore1] jdoe/jdoe-disk.vmdk")

        text = _render(report.export_table([rec]))

        assert "[datastore1] jdoe/jdoe-disk.vmdk" in text
        assert "Exported persistent disks (1)" in text

    def test_recovery_counts(self):
        ok = DiskRecord("a", "u", "ds", "p")
        bad = DiskRecord("b", "u", "ds", "p")
        rep = RecoveryReport(
            recovered=[RecoveredDisk(ok, "pd-1")],
            skipped=[SkippedRecord(bad, "Virtual disk 'b' not found in datastore ds")],
        )

        text = _render(report.recovery_table(rep))

        assert "1 recovered, 1 skipped" in text
        assert "pd-1" in text
        assert "Virtual disk 'b' not found" in text
