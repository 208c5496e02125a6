# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/cli/help_texts.py
from __future__ import annotations

# Pure help text used by the argparse epilog. No imports here.

YAML_EXAMPLE = r"""# pdmigrate configuration examples (YAML)
#
# Run:
#   pdmigrate --config horizon.yaml --workflow migrate
#
# Merge multiple configs (later overrides earlier):
#   pdmigrate --config base.yaml --config site-b.yaml
#
# Any flag can come from YAML (use the flag name with '_' or '-').
# Command-line flags always override config values.
#
# --------------------------------------------------------------------------------------
# Horizon persistent disks
# --------------------------------------------------------------------------------------
# workflow: migrate            # export | recover | migrate
# source_server: cs-a.example.com
# target_server: cs-b.example.com
# hv_user: svc-horizon
# hv_domain: ACME
# hv_password_env: HV_PASSWORD # read the password from this env var
# hv_insecure: false
# page_size: 100
#
# pool: Engineering-A          # source pool filter (optional)
# users: ["ACME\\jdoe", "ACME\\asmith"]   # source user filter (optional)
# target_pool: Engineering-B
# target_vcenter: vc-b.example.com
# inventory: ./disks.csv       # written by export/migrate, read by recover
#
# archive_poll_interval: 15    # seconds; doubles after each check
# archive_poll_max_interval: 120
# archive_timeout: 3600
#
# --------------------------------------------------------------------------------------
# vCenter DRS groups and rules
# --------------------------------------------------------------------------------------
# workflow: drs-rule
# vcenter: vc-a.example.com
# vc_user: administrator@vsphere.local
# vc_password_env: VC_PASSWORD
# cluster: Cluster-01
# vm_group: sql-vms
# vms: [sql-01, sql-02]
# host_group: rack-a
# hosts: [esx-01.example.com, esx-02.example.com]
# rule_name: sql-on-rack-a
# rule_type: vm-host-affine    # vm-host-affine | vm-host-anti-affine | vm-affine | vm-anti-affine
# mandatory: false
#
# --------------------------------------------------------------------------------------
# Nutanix Prism Element
# --------------------------------------------------------------------------------------
# workflow: vm-snapshot        # or unprotected-vms
# prism: prism-a.example.com
# prism_user: admin
# prism_password_env: PRISM_PASSWORD
# snapshot_vms: [app-01, db-01]
# snapshot_prefix: nightly
# output_csv: ./unprotected.csv  # unprotected-vms only
"""

WORKFLOW_SUMMARY = r"""
  export           Write in-use persistent disks of the source server to --inventory.
  recover          Re-attach the disks listed in --inventory to --target-pool.
  migrate          Pre-check, release disks on the source, recover them on the target.
  drs-rule         Ensure DRS VM/host groups and a placement rule on a cluster.
  vm-snapshot      Take on-demand Nutanix snapshots of --snapshot-vm VMs.
  unprotected-vms  List Nutanix VMs outside every protection domain.

Exit codes:
  0 ok, 2 usage, 3 partial (records skipped), 10 auth, 11 not found,
  12 network, 13 ambiguous name, 14 timeout, 30 remote API, 40 local I/O,
  130 interrupted
"""
