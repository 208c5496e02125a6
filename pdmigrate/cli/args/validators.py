# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/cli/args/validators.py
from __future__ import annotations

import argparse
from typing import Any, Dict

from ...core.exceptions import Fatal
from ...vcenter.drs import RULE_TYPES
from .groups import WORKFLOWS
from .helpers import _as_list, _merged_get, _merged_secret, _prompt, _require

HORIZON_WORKFLOWS = ("export", "recover", "migrate")
PRISM_WORKFLOWS = ("vm-snapshot", "unprotected-vms")


def _need(args: argparse.Namespace, conf: Dict[str, Any], key: str, label: str, **prompt_kw: Any) -> str:
    v = _merged_get(args, conf, key)
    if _require(v):
        setattr(args, key, v)
        return str(v)
    return _prompt(args, key, label, **prompt_kw)


def _need_secret(args: argparse.Namespace, conf: Dict[str, Any], key: str, label: str, **prompt_kw: Any) -> str:
    v = _merged_secret(args, conf, key, f"{key}_env")
    if _require(v):
        setattr(args, key, v)
        return str(v)
    return _prompt(args, key, label, secret=True, **prompt_kw)


def _validate_positive(args: argparse.Namespace, key: str, *, allow_none: bool = False) -> None:
    v = getattr(args, key, None)
    if v is None and allow_none:
        return
    try:
        ok = float(v) > 0
    except (TypeError, ValueError):
        ok = False
    if not ok:
        raise Fatal(2, f"--{key.replace('_', '-')} must be a positive number, got {v!r}")


def _validate_horizon(args: argparse.Namespace, conf: Dict[str, Any], **kw: Any) -> None:
    wf = args.workflow
    if wf in ("export", "migrate"):
        _need(args, conf, "source_server", "Source Horizon Connection Server", **kw)
    if wf in ("recover", "migrate"):
        _need(args, conf, "target_server", "Target Horizon Connection Server", **kw)
        _need(args, conf, "target_pool", "Target desktop pool", **kw)
        _need(args, conf, "target_vcenter", "Target vCenter", **kw)
    if wf in ("export", "recover"):
        _need(args, conf, "inventory", "Inventory CSV path", **kw)

    _need(args, conf, "hv_user", "Horizon user", **kw)
    _need_secret(args, conf, "hv_password", "Horizon password", **kw)

    _validate_positive(args, "page_size")
    _validate_positive(args, "hv_timeout", allow_none=True)
    if wf == "migrate":
        _validate_positive(args, "archive_poll_interval")
        _validate_positive(args, "archive_poll_max_interval")
        _validate_positive(args, "archive_timeout", allow_none=True)
        if float(args.archive_poll_max_interval) < float(args.archive_poll_interval):
            raise Fatal(2, "--archive-poll-max-interval must be >= --archive-poll-interval")


def _validate_drs(args: argparse.Namespace, conf: Dict[str, Any], **kw: Any) -> None:
    _need(args, conf, "vcenter", "vCenter hostname", **kw)
    _need(args, conf, "vc_user", "vCenter user", **kw)
    _need_secret(args, conf, "vc_password", "vCenter password", **kw)
    _need(args, conf, "cluster", "Cluster name", **kw)

    if args.rule_type not in RULE_TYPES:
        raise Fatal(2, f"Unknown rule type {args.rule_type!r}; expected one of {', '.join(RULE_TYPES)}")
    if not any(_require(getattr(args, k, None)) for k in ("vm_group", "host_group", "rule_name")):
        raise Fatal(2, "drs-rule needs at least one of --vm-group, --host-group or --rule-name")
    if _require(args.vm_group) and not args.vms:
        raise Fatal(2, "--vm-group needs at least one --vm")
    if _require(args.host_group) and not args.hosts:
        raise Fatal(2, "--host-group needs at least one --host")


def _validate_prism(args: argparse.Namespace, conf: Dict[str, Any], **kw: Any) -> None:
    _need(args, conf, "prism", "Prism Element hostname", **kw)
    _need(args, conf, "prism_user", "Prism user", **kw)
    _need_secret(args, conf, "prism_password", "Prism password", **kw)
    if args.workflow == "vm-snapshot" and not args.snapshot_vms:
        raise Fatal(2, "vm-snapshot needs at least one --snapshot-vm")


def validate_args(args: argparse.Namespace, conf: Dict[str, Any], **prompt_kw: Any) -> None:
    """
    Check the merged args for the selected workflow, prompting for missing
    required values when a terminal is available.

    Resolved values (including secrets read from env vars) are stored back on
    args so later stages read a single source.
    """
    wf = _merged_get(args, conf, "workflow")
    if not _require(wf):
        raise Fatal(2, f"Missing required workflow: use --workflow {{{','.join(WORKFLOWS)}}} or YAML `workflow:`")
    wf = str(wf).strip().replace("_", "-")
    if wf not in WORKFLOWS:
        raise Fatal(2, f"Unknown workflow {wf!r}; expected one of {', '.join(WORKFLOWS)}")
    args.workflow = wf

    for key in ("users", "vms", "hosts", "snapshot_vms"):
        setattr(args, key, _as_list(getattr(args, key, None)))

    if wf in HORIZON_WORKFLOWS:
        _validate_horizon(args, conf, **prompt_kw)
    elif wf == "drs-rule":
        _validate_drs(args, conf, **prompt_kw)
    elif wf in PRISM_WORKFLOWS:
        _validate_prism(args, conf, **prompt_kw)
