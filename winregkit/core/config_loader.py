# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/core/config_loader.py
"""
YAML/JSON configuration loading.

Configs are plain mappings whose keys mirror argparse dests. Several files
can be given; later files deep-merge over earlier ones, and the merged result
is applied as parser defaults so explicit CLI flags still win.
"""
from __future__ import annotations

import argparse
import glob
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from .exceptions import ConfigError


def _normalize_key(k: Any) -> str:
    return str(k).strip().replace("-", "_")


def _normalize(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {_normalize_key(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_normalize(x) for x in obj]
    return obj


def deep_merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in over.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = deep_merge(out[k], v)
        else:
            out[k] = v
    return out


class Config:
    @staticmethod
    def expand_configs(logger: logging.Logger, cfgs: Sequence[str]) -> List[Path]:
        """Expand ~ and globs, keeping the caller's order."""
        out: List[Path] = []
        for raw in cfgs:
            pattern = str(Path(raw).expanduser())
            hits = sorted(glob.glob(pattern)) if any(ch in pattern for ch in "*?[") else [pattern]
            if not hits:
                logger.warning("Config glob matched nothing: %s", raw)
            out.extend(Path(h) for h in hits)
        return out

    @staticmethod
    def load_file(logger: logging.Logger, path: Path) -> Dict[str, Any]:
        if not path.is_file():
            raise ConfigError(msg=f"Config file not found: {path}", context={"path": str(path)})

        raw = path.read_text(encoding="utf-8")
        try:
            if path.suffix.lower() == ".json":
                data = json.loads(raw)
            else:
                data = yaml.safe_load(raw)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(msg=f"Invalid config {path}: {e}", cause=e, context={"path": str(path)})

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(msg=f"Config root must be a mapping: {path}", context={"path": str(path)})

        logger.debug("Loaded config %s (%d keys)", path, len(data))
        return _normalize(data)

    @staticmethod
    def load_many(logger: logging.Logger, paths: Sequence[Path]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for p in paths:
            merged = deep_merge(merged, Config.load_file(logger, Path(p)))
        return merged

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """
        Push config values into the parser defaults for dests it knows about.
        Unknown keys are kept in `conf` (callers may read them) but logged.
        """
        known = {a.dest for a in parser._actions}
        defaults = {k: v for k, v in conf.items() if k in known}
        unknown = sorted(k for k in conf if k not in known)
        if unknown:
            logger.debug("Config keys without a CLI flag: %s", ", ".join(unknown))
        parser.set_defaults(**defaults)
