# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/core/utils.py
from __future__ import annotations

import datetime as _dt
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional


class U:
    @staticmethod
    def ensure_dir(p: Path) -> None:
        p.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def now_ts() -> str:
        return _dt.datetime.now().strftime("%Y%m%d-%H%M%S")

    @staticmethod
    def json_dump(obj: Any) -> str:
        try:
            return json.dumps(obj, indent=2, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return repr(obj)

    @staticmethod
    def same_name(a: Optional[str], b: Optional[str]) -> bool:
        """Case-insensitive name comparison used for every inventory lookup."""
        if a is None or b is None:
            return False
        return str(a).strip().casefold() == str(b).strip().casefold()

    @staticmethod
    def atomic_write_text(path: Path, text: str, *, encoding: str = "utf-8", newline: str = "") -> None:
        """
        Write text to a temp file in the target directory, then os.replace() it.
        Readers never observe a half-written file.
        """
        path = Path(path).expanduser().resolve()
        U.ensure_dir(path.parent)
        fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding=encoding, newline=newline) as f:
                f.write(text)
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
