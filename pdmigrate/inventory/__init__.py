# SPDX-License-Identifier: LGPL-3.0-or-later
# pdmigrate/inventory/__init__.py
from .csv_inventory import COLUMNS, parse_inventory, read_inventory, write_csv_rows, write_inventory

__all__ = ["COLUMNS", "parse_inventory", "read_inventory", "write_csv_rows", "write_inventory"]
