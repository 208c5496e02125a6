# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import argparse

import pytest

import pdmigrate.__main__ as entry
from pdmigrate.core.exceptions import Fatal, PollTimeout, PreCheckFailed
from pdmigrate.horizon.errors import ExitCode
from tests.fakes.fake_logger import FakeLogger


def _patch(monkeypatch, *, parse=None, run=None):
    logger = FakeLogger()

    def fake_parse(argv):
        if parse is not None:
            raise parse
        return argparse.Namespace(workflow="export", verbose=0), {}, logger

    class FakeOrchestrator:
        def __init__(self, logger, args):
            pass

        def run(self):
            if isinstance(run, BaseException):
                raise run
            return run

    monkeypatch.setattr(entry, "parse_args_with_config", fake_parse)
    monkeypatch.setattr(entry, "Orchestrator", FakeOrchestrator)
    return logger


@pytest.mark.unit
class TestExitCodes:
    def test_success(self, monkeypatch):
        _patch(monkeypatch, run=0)
        assert entry.run([]) == 0

    def test_partial_passes_through(self, monkeypatch):
        _patch(monkeypatch, run=int(ExitCode.PARTIAL))
        assert entry.run([]) == 3

    def test_usage_error_during_parse(self, monkeypatch, capsys):
        _patch(monkeypatch, parse=Fatal(2, "Missing required value: --hv-password (Horizon password)"))

        assert entry.run([]) == 2
        assert "--hv-password" in capsys.readouterr().err

    def test_precheck_failure(self, monkeypatch):
        logger = _patch(monkeypatch, run=PreCheckFailed(msg="Pre-check failed for 1 of 2 record(s)"))

        assert entry.run([]) == ExitCode.NOT_FOUND
        assert logger.messages("error") == ["[NOT_FOUND] Pre-check failed for 1 of 2 record(s)"]

    def test_timeout(self, monkeypatch):
        _patch(monkeypatch, run=PollTimeout(msg="Timed out waiting for disk"))
        assert entry.run([]) == ExitCode.TIMEOUT

    def test_interrupted(self, monkeypatch):
        _patch(monkeypatch, run=KeyboardInterrupt())
        assert entry.run([]) == 130

    def test_unexpected_network_error(self, monkeypatch):
        logger = _patch(monkeypatch, run=ConnectionRefusedError("connection refused"))

        assert entry.run([]) == ExitCode.NETWORK
        assert any("UNHANDLED" in m for m in logger.messages("error"))

    def test_main_exits(self, monkeypatch):
        _patch(monkeypatch, run=0)

        with pytest.raises(SystemExit) as ei:
            entry.main()
        assert ei.value.code == 0
