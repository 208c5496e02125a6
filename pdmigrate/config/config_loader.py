# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# pdmigrate/config/config_loader.py
from __future__ import annotations

import argparse
import glob
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from ..core.exceptions import Fatal


class Config:
    """
    YAML/JSON configuration files.

    Files are merged in order (later wins, mappings merged recursively) and the
    result is applied as argparse defaults, so command-line flags always beat
    configuration values.
    """

    @staticmethod
    def _norm_key(k: Any) -> str:
        return str(k).strip().replace("-", "_")

    @staticmethod
    def _normalize(obj: Any) -> Any:
        if isinstance(obj, dict):
            return {Config._norm_key(k): Config._normalize(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [Config._normalize(v) for v in obj]
        return obj

    @staticmethod
    def expand_configs(logger: Any, paths: Sequence[str]) -> List[Path]:
        out: List[Path] = []
        for raw in paths:
            p = os.path.expandvars(os.path.expanduser(str(raw)))
            if glob.has_magic(p):
                hits = sorted(glob.glob(p))
                if not hits:
                    raise Fatal(2, f"Config glob matched nothing: {raw}")
                out.extend(Path(h) for h in hits)
                continue
            if not Path(p).is_file():
                raise Fatal(2, f"Config file not found: {raw}")
            out.append(Path(p))
        if logger:
            logger.debug("Config files: %s", ", ".join(str(p) for p in out))
        return out

    @staticmethod
    def load_one(logger: Any, path: Path) -> Dict[str, Any]:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise Fatal(2, f"Cannot read config {path}: {e}", cause=e)
        try:
            if path.suffix.lower() == ".json":
                data = json.loads(text) if text.strip() else {}
            else:
                data = yaml.safe_load(text) or {}
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise Fatal(2, f"Invalid config {path}: {e}", cause=e)
        if not isinstance(data, dict):
            raise Fatal(2, f"Config {path} must contain a mapping at top level, got {type(data).__name__}")
        if logger:
            logger.debug("Loaded config %s (%d key(s))", path, len(data))
        return Config._normalize(data)

    @staticmethod
    def merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(base)
        for k, v in over.items():
            if isinstance(v, dict) and isinstance(out.get(k), dict):
                out[k] = Config.merge(out[k], v)
            else:
                out[k] = v
        return out

    @staticmethod
    def load_many(logger: Any, paths: Sequence[Path]) -> Dict[str, Any]:
        conf: Dict[str, Any] = {}
        for p in paths:
            conf = Config.merge(conf, Config.load_one(logger, p))
        return conf

    @staticmethod
    def _append_dests(parser: argparse.ArgumentParser) -> List[str]:
        return [a.dest for a in parser._actions if isinstance(a, argparse._AppendAction)]

    @staticmethod
    def apply_as_defaults(logger: Any, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """
        Known keys become parser defaults. Repeatable (append) flags are left
        alone here: argparse would append CLI values to a list default instead
        of replacing it. apply_list_values() fills those after parsing.
        """
        known = {a.dest for a in parser._actions}
        appends = set(Config._append_dests(parser))
        defaults = {k: v for k, v in conf.items() if k in known and k not in appends}
        unknown = sorted(k for k in conf if k not in known)
        if unknown and logger:
            logger.debug("Config keys without a matching flag (kept in conf only): %s", ", ".join(unknown))
        if defaults:
            parser.set_defaults(**defaults)

    @staticmethod
    def apply_list_values(parser: argparse.ArgumentParser, args: argparse.Namespace, conf: Dict[str, Any]) -> None:
        for dest in Config._append_dests(parser):
            if dest == "config" or getattr(args, dest, None):
                continue
            if dest in conf and conf[dest] is not None:
                setattr(args, dest, conf[dest])
