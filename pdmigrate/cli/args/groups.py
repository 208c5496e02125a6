# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/cli/args/groups.py
from __future__ import annotations

import argparse

from ...core.retry import PollPolicy
from ...horizon.client import DEFAULT_PAGE_SIZE, DEFAULT_TIMEOUT_S
from ...nutanix.client import DEFAULT_PORT as PRISM_DEFAULT_PORT
from ...vcenter.drs import RULE_TYPES, RULE_VM_HOST_AFFINE

WORKFLOWS = ("export", "recover", "migrate", "drs-rule", "vm-snapshot", "unprotected-vms")

_POLL = PollPolicy()


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Global config/logging (two-phase parse relies on these)
    # ------------------------------------------------------------------
    from ... import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged normalized config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv (debug), -vvv (trace)")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q (warnings), -qq (errors)")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit logs as NDJSON.")
    p.add_argument("--debug", dest="debug", action="store_true", help="Same as -vv.")
    p.add_argument(
        "--no-prompt",
        dest="no_prompt",
        action="store_true",
        help="Never prompt for missing values; fail with a usage error instead.",
    )


def _add_workflow(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--workflow",
        dest="workflow",
        default=None,
        choices=WORKFLOWS,
        help="What to do (normally from YAML `workflow:`).",
    )


def _add_horizon_knobs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Horizon Connection Servers
    # ------------------------------------------------------------------
    g = p.add_argument_group("Horizon")
    g.add_argument("--source-server", dest="source_server", default=None, help="Source Connection Server (FQDN).")
    g.add_argument("--target-server", dest="target_server", default=None, help="Target Connection Server (FQDN).")
    g.add_argument("--hv-user", dest="hv_user", default=None, help="Horizon admin user (user, DOMAIN\\user or user@domain).")
    g.add_argument("--hv-password", dest="hv_password", default=None, help="Horizon password (prefer --hv-password-env).")
    g.add_argument("--hv-password-env", dest="hv_password_env", default=None, help="Env var holding the Horizon password.")
    g.add_argument("--hv-domain", dest="hv_domain", default=None, help="AD domain for login.")
    g.add_argument("--hv-insecure", dest="hv_insecure", action="store_true", help="Skip TLS verification.")
    g.add_argument("--hv-timeout", dest="hv_timeout", type=float, default=DEFAULT_TIMEOUT_S, help="HTTP timeout (s).")
    g.add_argument("--page-size", dest="page_size", type=int, default=DEFAULT_PAGE_SIZE, help="Listing page size.")


def _add_scope_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Disk selection and target")
    g.add_argument("--pool", dest="pool", default=None, help="Only disks of this source desktop pool.")
    g.add_argument(
        "--user",
        dest="users",
        action="append",
        default=None,
        help="Only disks owned by this user (repeatable).",
    )
    g.add_argument("--target-pool", dest="target_pool", default=None, help="Desktop pool to recover disks into.")
    g.add_argument("--target-vcenter", dest="target_vcenter", default=None, help="vCenter of the target pool.")
    g.add_argument("--inventory", dest="inventory", default=None, help="Inventory CSV (written by export, read by recover).")


def _add_archive_poll_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Archiving wait (migrate)")
    g.add_argument(
        "--archive-poll-interval",
        dest="archive_poll_interval",
        type=float,
        default=_POLL.interval_s,
        help="First wait between status checks (s); doubles after each check.",
    )
    g.add_argument(
        "--archive-poll-max-interval",
        dest="archive_poll_max_interval",
        type=float,
        default=_POLL.max_interval_s,
        help="Upper bound for the wait between checks (s).",
    )
    g.add_argument(
        "--archive-timeout",
        dest="archive_timeout",
        type=float,
        default=_POLL.timeout_s,
        help="Give up waiting for a disk to archive after this many seconds.",
    )


def _add_vcenter_drs_knobs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # vCenter + DRS
    # ------------------------------------------------------------------
    g = p.add_argument_group("vCenter DRS")
    g.add_argument("--vcenter", dest="vcenter", default=None, help="vCenter hostname.")
    g.add_argument("--vc-user", dest="vc_user", default=None, help="vCenter username.")
    g.add_argument("--vc-password", dest="vc_password", default=None, help="vCenter password (prefer --vc-password-env).")
    g.add_argument("--vc-password-env", dest="vc_password_env", default=None, help="Env var holding the vCenter password.")
    g.add_argument("--vc-port", dest="vc_port", type=int, default=443, help="vCenter port.")
    g.add_argument("--vc-insecure", dest="vc_insecure", action="store_true", help="Skip TLS verification.")
    g.add_argument("--cluster", dest="cluster", default=None, help="Cluster name.")
    g.add_argument("--vm-group", dest="vm_group", default=None, help="DRS VM group to create or extend.")
    g.add_argument("--vm", dest="vms", action="append", default=None, help="VM name (repeatable).")
    g.add_argument("--host-group", dest="host_group", default=None, help="DRS host group to create or extend.")
    g.add_argument("--host", dest="hosts", action="append", default=None, help="ESXi host name (repeatable).")
    g.add_argument("--rule-name", dest="rule_name", default=None, help="DRS rule to create or replace.")
    g.add_argument("--rule-type", dest="rule_type", default=RULE_VM_HOST_AFFINE, choices=RULE_TYPES, help="DRS rule type.")
    g.add_argument("--mandatory", dest="mandatory", action="store_true", help="Make a VM/host rule a 'must' rule.")


def _add_nutanix_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("Nutanix Prism")
    g.add_argument("--prism", dest="prism", default=None, help="Prism Element hostname.")
    g.add_argument("--prism-user", dest="prism_user", default=None, help="Prism username.")
    g.add_argument("--prism-password", dest="prism_password", default=None, help="Prism password (prefer --prism-password-env).")
    g.add_argument("--prism-password-env", dest="prism_password_env", default=None, help="Env var holding the Prism password.")
    g.add_argument("--prism-port", dest="prism_port", type=int, default=PRISM_DEFAULT_PORT, help="Prism port.")
    g.add_argument("--prism-insecure", dest="prism_insecure", action="store_true", help="Skip TLS verification.")
    g.add_argument("--snapshot-vm", dest="snapshot_vms", action="append", default=None, help="VM to snapshot (repeatable).")
    g.add_argument("--snapshot-prefix", dest="snapshot_prefix", default="pdmigrate", help="Snapshot name prefix.")
    g.add_argument("--output-csv", dest="output_csv", default=None, help="Also write unprotected VMs to this CSV.")
