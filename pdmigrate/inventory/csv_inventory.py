# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/inventory/csv_inventory.py
"""
Persistent-disk inventory file.

A plain CSV with the header `PersistentDiskName,AssignedUser,Datastore,Path`.
Files written by PowerShell `Export-Csv` (UTF-8 BOM, `#TYPE ...` first line)
are accepted on read.
"""
from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.exceptions import InventoryError
from ..core.utils import U
from ..horizon.models import DiskRecord, validate_batch

COL_DISK = "PersistentDiskName"
COL_USER = "AssignedUser"
COL_DATASTORE = "Datastore"
COL_PATH = "Path"

COLUMNS: Tuple[str, ...] = (COL_DISK, COL_USER, COL_DATASTORE, COL_PATH)


def write_csv_rows(path: Path, fieldnames: Sequence[str], rows: Iterable[Mapping[str, object]]) -> Path:
    """Render rows with csv.DictWriter and write them atomically."""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(fieldnames))
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    path = Path(path).expanduser()
    try:
        U.atomic_write_text(path, buf.getvalue())
    except OSError as e:
        raise InventoryError(msg=f"Cannot write {path}: {e}", cause=e, context={"path": str(path)})
    return path


def write_inventory(path: Path, records: Sequence[DiskRecord], *, logger: Optional[logging.Logger] = None) -> Path:
    validate_batch(records)
    rows = (
        {COL_DISK: r.disk_name, COL_USER: r.assigned_user, COL_DATASTORE: r.datastore_name, COL_PATH: r.path}
        for r in records
    )
    out = write_csv_rows(path, COLUMNS, rows)
    if logger:
        logger.info("📝 Wrote %d record(s) to %s", len(records), out)
    return out


def _strip_type_line(text: str) -> str:
    if text.startswith("#TYPE"):
        _, _, rest = text.partition("\n")
        return rest
    return text


def parse_inventory(text: str, *, source: str = "<string>") -> List[DiskRecord]:
    text = _strip_type_line(text.lstrip("\ufeff"))
    reader = csv.DictReader(io.StringIO(text, newline=""))
    header = [h.strip() for h in (reader.fieldnames or [])]
    missing = [c for c in COLUMNS if c not in header]
    if missing:
        raise InventoryError(
            msg=f"{source}: missing column(s) {', '.join(missing)}; expected {','.join(COLUMNS)}",
            context={"source": source},
        )

    records: List[DiskRecord] = []
    for lineno, row in enumerate(reader, start=2):
        row = {(k or "").strip(): v for k, v in row.items()}
        values = [row.get(c) for c in COLUMNS]
        if all(not (v or "").strip() for v in values):
            continue
        if any(v is None for v in values):
            raise InventoryError(msg=f"{source}: row {lineno} is short", context={"source": source, "row": lineno})
        records.append(DiskRecord(*values))
    return records


def read_inventory(path: Path, *, logger: Optional[logging.Logger] = None) -> List[DiskRecord]:
    path = Path(path).expanduser()
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InventoryError(msg=f"Cannot read inventory {path}: {e}", cause=e, context={"path": str(path)})
    records = parse_inventory(text, source=str(path))
    validate_batch(records)
    if logger:
        logger.info("📄 Loaded %d record(s) from %s", len(records), path)
    return records
