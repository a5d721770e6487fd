# bootstrapcli/config.py
# -*- coding: utf-8 -*-
"""
bootstrapcli central configuration loader

Features:
- Read YAML/JSON config from multiple locations (explicit, env override, cwd, user, system)
- Merge with authoritative DEFAULTS, normalize/coerce types (paths, human sizes)
- Validate structure and types, warn or error (fatal optional)
- Provide typed access via Config dataclass (get_config(), get_section(), helpers)
"""

from __future__ import annotations
import os
import json
import logging
import threading
from pathlib import Path
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List, Tuple, Union

import yaml

logger = logging.getLogger("bootstrapcli.config")

ENV_VAR = "BOOTSTRAPCLI_CONFIG"

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Any] = {
    "logging": {
        "level": "INFO",
        "color": True,
        "file": None,
        "file_level": "DEBUG",
        "max_size": "10M",  # human readable
        "backups": 3,
        "jsonl": {"enabled": False, "path": None, "level": "INFO"},
        "module_levels": {},
    },
    "repos": {
        "work_dir": None,  # None -> <cwd>/<rid>
        "remotes": {
            "coreclr": "https://github.com/dotnet/coreclr.git",
            "corefx": "https://github.com/dotnet/corefx.git",
            "core-setup": "https://github.com/dotnet/core-setup.git",
        },
    },
    "build": {
        "component_version": "2.0.0",
        "stream_output": True,
    },
    "hardening": {
        "tool": "paxctl",
        "args": ["-c", "-m"],
    },
    "manifest": {
        "default_rid": "linux-x64",
    },
}

# ----------------------------
# Dataclass to hold config
# ----------------------------
@dataclass
class Config:
    raw: Dict[str, Any] = field(default_factory=dict)     # values loaded from file (if any)
    merged: Dict[str, Any] = field(default_factory=dict)  # merged with DEFAULTS
    path: Optional[Path] = None

    def get(self, path: str, default: Any = None) -> Any:
        """Dot-separated getter for merged config."""
        parts = path.split(".") if path else []
        cur: Any = self.merged
        for p in parts:
            if isinstance(cur, dict) and p in cur:
                cur = cur[p]
            else:
                return default
        return cur

    def section(self, name: str) -> Dict[str, Any]:
        val = self.merged.get(name)
        return deepcopy(val) if isinstance(val, dict) else {}

    def as_dict(self) -> Dict[str, Any]:
        return deepcopy(self.merged)

# ----------------------------
# Module state
# ----------------------------
_CONFIG: Optional[Config] = None
_CONFIG_LOCK = threading.RLock()

# ----------------------------
# Utilities
# ----------------------------
def human_size_to_bytes(val: Union[str, int, None]) -> Optional[int]:
    if val is None:
        return None
    if isinstance(val, int):
        return val
    s = str(val).strip().upper()
    units = {"KB": 1024, "K": 1024, "MB": 1024**2, "M": 1024**2, "GB": 1024**3, "G": 1024**3}
    try:
        for suffix, mul in units.items():
            if s.endswith(suffix):
                num = float(s[: -len(suffix)].strip())
                return int(num * mul)
        return int(float(s))
    except ValueError:
        logger.warning("config: cannot parse human size '%s'", val)
        return None

def _expand_path(val: Optional[str]) -> Optional[str]:
    if not val:
        return val
    return os.path.abspath(os.path.expanduser(os.path.expandvars(val)))

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    res = deepcopy(a)
    for k, v in b.items():
        if k in res and isinstance(res[k], dict) and isinstance(v, dict):
            res[k] = _deep_merge(res[k], v)
        else:
            res[k] = deepcopy(v)
    return res

def _find_candidates(explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    env = os.environ.get(ENV_VAR)
    if explicit:
        candidates.append(Path(explicit))
    if env:
        candidates.append(Path(env))
    candidates.extend([
        Path.cwd() / "bootstrapcli.yaml",
        Path.cwd() / "bootstrapcli.yml",
        Path.cwd() / "bootstrapcli.json",
        Path.home() / ".config" / "bootstrapcli" / "config.yaml",
        Path("/etc") / "bootstrapcli" / "config.yaml",
    ])
    return candidates

def _load_file(path: Path) -> Optional[Dict[str, Any]]:
    try:
        txt = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("config: failed reading %s: %s", path, e)
        return None

    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(txt)
            return data if isinstance(data, dict) else {}
        except yaml.YAMLError as e:
            logger.error("config: yaml parse fail %s: %s", path, e)
            return None

    try:
        data = json.loads(txt)
        return data if isinstance(data, dict) else {}
    except json.JSONDecodeError as e:
        logger.error("config: json parse fail %s: %s", path, e)
        return None

def _normalize_and_coerce(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize path fields, convert human sizes and coerce basic types."""
    out = deepcopy(cfg)
    for section, key in (("logging", "file"), ("repos", "work_dir")):
        ref = out.get(section)
        if isinstance(ref, dict) and isinstance(ref.get(key), str):
            ref[key] = _expand_path(ref[key])
    jsonl = out.get("logging", {}).get("jsonl")
    if isinstance(jsonl, dict) and isinstance(jsonl.get("path"), str):
        jsonl["path"] = _expand_path(jsonl["path"])

    log_cfg = out.get("logging")
    if isinstance(log_cfg, dict):
        size = human_size_to_bytes(log_cfg.get("max_size"))
        if size is not None:
            log_cfg["max_size_bytes"] = size
        try:
            log_cfg["backups"] = int(log_cfg.get("backups", 3))
        except (TypeError, ValueError):
            logger.debug("config: failed to coerce logging.backups", exc_info=True)

    build = out.get("build")
    if isinstance(build, dict) and build.get("component_version") is not None:
        build["component_version"] = str(build["component_version"])
    return out

def _validate_structure(cfg: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (ok, issues_list). Non-fatal warnings unless called with fatal=True in load."""
    warnings: List[str] = []
    for k in cfg.keys():
        if k not in DEFAULTS:
            warnings.append(f"Unknown top-level config key: {k}")
    remotes = cfg.get("repos", {}).get("remotes")
    if not isinstance(remotes, dict):
        warnings.append("repos.remotes must be a mapping of repository name to url")
    else:
        for name in DEFAULTS["repos"]["remotes"]:
            if not remotes.get(name):
                warnings.append(f"repos.remotes.{name} is missing")
    args = cfg.get("hardening", {}).get("args")
    if args is not None and not isinstance(args, list):
        warnings.append("hardening.args should be a list")
    return (len(warnings) == 0, warnings)

# ----------------------------
# Loading
# ----------------------------
def _find_path(explicit: Optional[str] = None) -> Optional[Path]:
    for p in _find_candidates(explicit):
        if p.exists():
            return p
    if explicit:
        logger.warning("config: explicit config %s does not exist, using defaults", explicit)
    return None

def load(explicit_path: Optional[str] = None, fatal: bool = False) -> Config:
    """
    Load and merge config. If fatal=True then structural validation failures raise.
    Returns Config object.
    """
    global _CONFIG
    with _CONFIG_LOCK:
        cfg_path = _find_path(explicit_path)
        raw: Dict[str, Any] = {}
        if cfg_path:
            data = _load_file(cfg_path)
            if data is None:
                logger.warning("config: file found but could not be parsed: %s", cfg_path)
            else:
                raw = data
        merged = _deep_merge(DEFAULTS, raw)
        normalized = _normalize_and_coerce(merged)
        ok, issues = _validate_structure(normalized)
        if not ok:
            msg = f"config: validation issues: {issues}"
            if fatal:
                logger.error(msg)
                raise ValueError(msg)
            logger.warning(msg)
        _CONFIG = Config(raw=raw, merged=normalized, path=cfg_path)
        logger.debug("config: loaded merged config (from=%s)", str(cfg_path) if cfg_path else "<defaults>")
        return _CONFIG

def get_config() -> Config:
    global _CONFIG
    with _CONFIG_LOCK:
        if _CONFIG is None:
            _CONFIG = load()
        return _CONFIG

def reset() -> None:
    """Forget the cached config; next get_config() loads again."""
    global _CONFIG
    with _CONFIG_LOCK:
        _CONFIG = None

# ----------------------------
# Convenience helpers for modules
# ----------------------------
def get_section(name: str) -> Dict[str, Any]:
    return get_config().section(name)

def get_remotes() -> Dict[str, str]:
    return dict(get_config().get("repos.remotes", {}) or {})

def get_build_config() -> Dict[str, Any]:
    return get_section("build")

# ----------------------------
# CLI for inspection
# ----------------------------
if __name__ == "__main__":
    import argparse
    ap = argparse.ArgumentParser(prog="bootstrapcli-config", description="Inspect/validate bootstrapcli config")
    ap.add_argument("--raw", action="store_true", help="print raw file config only (if file exists)")
    ap.add_argument("--validate", action="store_true", help="validate config and list issues")
    ap.add_argument("--path", help="explicit config path to load")
    args = ap.parse_args()
    cfg = load(args.path)
    print(json.dumps(cfg.raw if args.raw else cfg.merged, indent=2, ensure_ascii=False))
    if args.validate:
        ok, issues = _validate_structure(cfg.merged)
        print("OK:", ok)
        for it in issues:
            print(" -", it)
