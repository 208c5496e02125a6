# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/vcenter/drs.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from pyVmomi import vim

from ..core.exceptions import Fatal
from .client import VCenterClient

RULE_VM_HOST_AFFINE = "vm-host-affine"
RULE_VM_HOST_ANTI_AFFINE = "vm-host-anti-affine"
RULE_VM_AFFINE = "vm-affine"
RULE_VM_ANTI_AFFINE = "vm-anti-affine"

RULE_TYPES = (RULE_VM_HOST_AFFINE, RULE_VM_HOST_ANTI_AFFINE, RULE_VM_AFFINE, RULE_VM_ANTI_AFFINE)


@dataclass
class DrsChange:
    """What a DRS reconfigure will do, for logging and the summary table."""
    cluster: str
    groups: List[str] = field(default_factory=list)
    rules: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.groups or self.rules)


class DrsRuleManager:
    """
    Ensures DRS VM/host groups and a placement rule on one cluster.

    Groups are created ("add") or extended with the missing members ("edit").
    A rule with the same name is replaced ("edit"), otherwise added. All
    changes go out in a single ReconfigureComputeResource_Task.
    """

    def __init__(self, logger: logging.Logger, client: VCenterClient):
        self.logger = logger
        self.client = client

    @staticmethod
    def _by_name(items: Optional[Sequence[Any]], name: str) -> Any:
        for it in items or []:
            if getattr(it, "name", None) == name:
                return it
        return None

    def _group_spec(self, existing_groups: Sequence[Any], group_cls: Any, attr: str, name: str,
                    members: Sequence[Any], change: DrsChange) -> Optional[Any]:
        current = self._by_name(existing_groups, name)
        if current is None:
            info = group_cls(name=name)
            setattr(info, attr, list(members))
            change.groups.append(f"add {name} ({len(members)} member(s))")
            return vim.cluster.GroupSpec(info=info, operation="add")

        have = list(getattr(current, attr, None) or [])
        missing = [m for m in members if m not in have]
        if not missing:
            self.logger.info("Group %s already contains all requested members", name)
            return None
        info = group_cls(name=name)
        setattr(info, attr, have + missing)
        change.groups.append(f"edit {name} (+{len(missing)} member(s))")
        return vim.cluster.GroupSpec(info=info, operation="edit")

    def _rule_info(self, rule_type: str, rule_name: str, *, vm_group: Optional[str], host_group: Optional[str],
                   vms: Sequence[Any], mandatory: bool, enabled: bool) -> Any:
        if rule_type in (RULE_VM_HOST_AFFINE, RULE_VM_HOST_ANTI_AFFINE):
            if not (vm_group and host_group):
                raise Fatal(2, f"Rule type {rule_type} needs both --vm-group and --host-group")
            info = vim.cluster.VmHostRuleInfo(
                name=rule_name, enabled=enabled, mandatory=mandatory, vmGroupName=vm_group
            )
            if rule_type == RULE_VM_HOST_AFFINE:
                info.affineHostGroupName = host_group
            else:
                info.antiAffineHostGroupName = host_group
            return info

        if len(vms) < 2:
            raise Fatal(2, f"Rule type {rule_type} needs at least two VMs (--vm)")
        cls = vim.cluster.AffinityRuleSpec if rule_type == RULE_VM_AFFINE else vim.cluster.AntiAffinityRuleSpec
        return cls(name=rule_name, enabled=enabled, mandatory=mandatory, vm=list(vms))

    def build_spec(
        self,
        cluster: Any,
        *,
        vm_group: Optional[str] = None,
        vms: Sequence[Any] = (),
        host_group: Optional[str] = None,
        hosts: Sequence[Any] = (),
        rule_name: Optional[str] = None,
        rule_type: str = RULE_VM_HOST_AFFINE,
        mandatory: bool = False,
        enabled: bool = True,
    ) -> tuple:
        """Return (ClusterConfigSpecEx, DrsChange) for already-resolved VM/host objects."""
        if rule_type not in RULE_TYPES:
            raise Fatal(2, f"Unknown rule type {rule_type!r}; expected one of {', '.join(RULE_TYPES)}")

        cfg = cluster.configurationEx
        change = DrsChange(cluster=cluster.name)
        spec = vim.cluster.ConfigSpecEx()
        group_specs: List[Any] = []
        rule_specs: List[Any] = []

        if vm_group and vms:
            gs = self._group_spec(cfg.group, vim.cluster.VmGroup, "vm", vm_group, vms, change)
            if gs is not None:
                group_specs.append(gs)
        if host_group and hosts:
            gs = self._group_spec(cfg.group, vim.cluster.HostGroup, "host", host_group, hosts, change)
            if gs is not None:
                group_specs.append(gs)

        if rule_name:
            info = self._rule_info(
                rule_type, rule_name, vm_group=vm_group, host_group=host_group,
                vms=vms, mandatory=mandatory, enabled=enabled,
            )
            current = self._by_name(cfg.rule, rule_name)
            if current is not None:
                info.key = current.key
                rule_specs.append(vim.cluster.RuleSpec(info=info, operation="edit"))
                change.rules.append(f"edit {rule_name} ({rule_type})")
            else:
                rule_specs.append(vim.cluster.RuleSpec(info=info, operation="add"))
                change.rules.append(f"add {rule_name} ({rule_type})")

        spec.groupSpec = group_specs
        spec.rulesSpec = rule_specs
        return spec, change

    def apply(
        self,
        cluster: str,
        *,
        vm_group: Optional[str] = None,
        vms: Sequence[str] = (),
        host_group: Optional[str] = None,
        hosts: Sequence[str] = (),
        rule_name: Optional[str] = None,
        rule_type: str = RULE_VM_HOST_AFFINE,
        mandatory: bool = False,
        enabled: bool = True,
    ) -> DrsChange:
        cl = self.client.find_by_name(vim.ClusterComputeResource, cluster)
        vm_objs = [self.client.find_by_name(vim.VirtualMachine, n) for n in vms]
        host_objs = [self.client.find_by_name(vim.HostSystem, n) for n in hosts]

        spec, change = self.build_spec(
            cl,
            vm_group=vm_group,
            vms=vm_objs,
            host_group=host_group,
            hosts=host_objs,
            rule_name=rule_name,
            rule_type=rule_type,
            mandatory=mandatory,
            enabled=enabled,
        )
        if change.empty:
            self.logger.info("✅ DRS configuration of %s already up to date", cluster)
            return change

        for line in change.groups + change.rules:
            self.logger.info("🧩 %s: %s", cluster, line)
        task = cl.ReconfigureComputeResource_Task(spec=spec, modify=True)
        self.client.wait_for_task(task, what=f"DRS reconfigure of {cluster}")
        self.logger.info("✅ DRS configuration of %s applied", cluster)
        return change
