# SPDX-License-Identifier: LGPL-3.0-or-later
# pdmigrate/vcenter/__init__.py
from .client import VCenterClient
from .drs import RULE_TYPES, DrsChange, DrsRuleManager

__all__ = ["DrsChange", "DrsRuleManager", "RULE_TYPES", "VCenterClient"]
