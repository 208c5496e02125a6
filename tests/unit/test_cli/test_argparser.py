# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import json

import pytest

from pdmigrate.cli.args.helpers import _as_list, _require
from pdmigrate.cli.args.parser import build_parser, parse_args_with_config
from pdmigrate.core.exceptions import REDACTED, Fatal
from tests.fakes.fake_logger import FakeLogger


class _Tty:
    def isatty(self):
        return True


class _Pipe:
    def isatty(self):
        return False


def _parse(argv, **kw):
    kw.setdefault("stdin", _Pipe())
    args, conf, _ = parse_args_with_config(argv, logger=FakeLogger(), **kw)
    return args, conf


def _config(tmp_path, text, name="run.yaml"):
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return str(p)


EXPORT_YAML = """
workflow: export
source-server: cs-old.example.com
hv-user: ACME\\admin
hv-password-env: PDM_TEST_HV_PW
inventory: /tmp/disks.csv
users:
  - ACME\\jdoe
  - ACME\\asmith
"""


@pytest.mark.unit
class TestConfigAndFlags:
    def test_yaml_drives_workflow(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PDM_TEST_HV_PW", "s3cret")

        args, _ = _parse(["--config", _config(tmp_path, EXPORT_YAML)])

        assert args.workflow == "export"
        assert args.source_server == "cs-old.example.com"
        assert args.hv_user == "ACME\\admin"
        assert args.hv_password == "s3cret"

    def test_cli_overrides_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PDM_TEST_HV_PW", "s3cret")

        args, _ = _parse(["--config", _config(tmp_path, EXPORT_YAML), "--source-server", "cs-new"])

        assert args.source_server == "cs-new"

    def test_repeatable_flags_replace_yaml_lists(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PDM_TEST_HV_PW", "s3cret")
        cfg = _config(tmp_path, EXPORT_YAML)

        from_yaml, _ = _parse(["--config", cfg])
        from_cli, _ = _parse(["--config", cfg, "--user", "ACME\\bwayne"])

        assert from_yaml.users == ["ACME\\jdoe", "ACME\\asmith"]
        assert from_cli.users == ["ACME\\bwayne"]

    def test_comma_separated_list(self, tmp_path):
        cfg = _config(
            tmp_path,
            "workflow: vm_snapshot\nprism: ntnx1\nprism-user: admin\nprism-password: pw\nsnapshot-vms: 'vm1, vm2'\n",
        )

        args, _ = _parse(["--config", cfg])

        assert args.workflow == "vm-snapshot"
        assert args.snapshot_vms == ["vm1", "vm2"]

    def test_unknown_workflow_in_yaml(self, tmp_path):
        with pytest.raises(Fatal, match="Unknown workflow") as ei:
            _parse(["--config", _config(tmp_path, "workflow: rebalance\n")])
        assert ei.value.code == 2

    def test_workflow_required(self):
        with pytest.raises(Fatal, match="Missing required workflow"):
            _parse([])

    def test_unknown_flag_is_usage_error(self):
        with pytest.raises(SystemExit) as ei:
            build_parser().parse_args(["--bogus"])
        assert ei.value.code == 2


@pytest.mark.unit
class TestPrompting:
    BASE = ["--workflow", "recover", "--target-server", "cs2", "--target-pool", "P", "--target-vcenter", "vc",
            "--inventory", "disks.csv", "--hv-user", "admin"]

    def test_no_tty_is_usage_error(self):
        with pytest.raises(Fatal, match="--hv-password") as ei:
            _parse(self.BASE)
        assert ei.value.code == 2

    def test_secret_prompt_on_tty(self):
        asked = []

        def getpass_fn(label):
            asked.append(label)
            return "typed-pw"

        args, _ = _parse(self.BASE, stdin=_Tty(), getpass_fn=getpass_fn)

        assert args.hv_password == "typed-pw"
        assert asked == ["Horizon password: "]

    def test_plain_prompt_for_missing_value(self):
        argv = [a for a in self.BASE if a not in ("--target-pool", "P")]

        args, _ = _parse(argv + ["--hv-password", "pw"], stdin=_Tty(), input_fn=lambda label: " Engineering-B ")

        assert args.target_pool == "Engineering-B"

    def test_no_prompt_flag(self):
        with pytest.raises(Fatal):
            _parse(self.BASE + ["--no-prompt"], stdin=_Tty(), getpass_fn=lambda label: "pw")

    def test_empty_answer(self):
        with pytest.raises(Fatal):
            _parse(self.BASE, stdin=_Tty(), getpass_fn=lambda label: "   ")


@pytest.mark.unit
class TestWorkflowValidation:
    HV = ["--hv-user", "admin", "--hv-password", "pw"]

    def test_migrate_needs_both_servers(self):
        with pytest.raises(Fatal, match="--target-server"):
            _parse(["--workflow", "migrate", "--source-server", "cs1", *self.HV])

    def test_migrate_poll_bounds(self):
        argv = ["--workflow", "migrate", "--source-server", "cs1", "--target-server", "cs2", "--target-pool", "P",
                "--target-vcenter", "vc", *self.HV, "--archive-poll-interval", "60", "--archive-poll-max-interval", "30"]

        with pytest.raises(Fatal, match="max-interval"):
            _parse(argv)

    def test_negative_page_size(self):
        with pytest.raises(Fatal, match="--page-size"):
            _parse(["--workflow", "export", "--source-server", "cs1", "--inventory", "x.csv", *self.HV,
                    "--page-size", "-1"])

    def test_drs_needs_something_to_do(self):
        argv = ["--workflow", "drs-rule", "--vcenter", "vc1", "--vc-user", "u", "--vc-password", "p", "--cluster", "CL1"]

        with pytest.raises(Fatal, match="at least one of"):
            _parse(argv)
        with pytest.raises(Fatal, match="--vm-group needs"):
            _parse(argv + ["--vm-group", "VDI-VMs"])

        args, _ = _parse(argv + ["--vm-group", "VDI-VMs", "--vm", "vm1", "--vm", "vm2"])
        assert args.vms == ["vm1", "vm2"]

    def test_snapshot_needs_vms(self):
        with pytest.raises(Fatal, match="--snapshot-vm"):
            _parse(["--workflow", "vm-snapshot", "--prism", "n1", "--prism-user", "u", "--prism-password", "p"])


@pytest.mark.security
class TestDumps:
    def test_dump_config_is_redacted(self, tmp_path, capsys):
        cfg = _config(tmp_path, "workflow: export\nhv-password: hunter2\n")

        with pytest.raises(SystemExit) as ei:
            _parse(["--config", cfg, "--dump-config"])

        assert ei.value.code == 0
        out = json.loads(capsys.readouterr().out)
        assert out["hv_password"] == REDACTED
        assert "hunter2" not in json.dumps(out)


@pytest.mark.unit
class TestHelpers:
    def test_require(self):
        assert not _require(None)
        assert not _require("  ")
        assert not _require([])
        assert _require(0)
        assert _require(["a"])

    def test_as_list(self):
        assert _as_list(None) == []
        assert _as_list("a, b,,c") == ["a", "b", "c"]
        assert _as_list(["a ", "", " b"]) == ["a", "b"]
