# bootstrapcli/logging.py
# -*- coding: utf-8 -*-
"""
bootstrapcli logging

Features:
 - Driven by the "logging" section of bootstrapcli.config
 - Console color formatter
 - Rotating file handler
 - JSONL transparency log (one JSON object per record)
 - Module-level configurable log levels (module_levels)
 - Build output streaming helper for the native build stages
 - Per-level counters
"""

from __future__ import annotations
import sys
import json
import time
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import Dict, Any, Optional, List

from bootstrapcli.config import get_config, human_size_to_bytes

ROOT_NAME = "bootstrapcli"
DEFAULT_FORMAT = "[%(asctime)s] [%(levelname)s] [%(bootstrap_module)s] %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(bootstrap_module)s] %(message)s"

_logger = logging.getLogger("bootstrapcli.logging")

# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m", # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str = None, datefmt: str = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg

# ----------------------
# JSONL formatter for transparency log
# ----------------------
class JSONLineFormatter(logging.Formatter):
    def format(self, record):
        obj = {
            "timestamp": time.time(),
            "level": record.levelname,
            "module": getattr(record, "bootstrap_module", record.name),
            "message": record.getMessage(),
        }
        if record.exc_info:
            obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False)

# ----------------------
# Filters
# ----------------------
class ModuleNameFilter(logging.Filter):
    """Records emitted through plain child loggers get their logger name as module."""
    def filter(self, record):
        if not hasattr(record, "bootstrap_module"):
            name = record.name
            if name.startswith(ROOT_NAME + "."):
                name = name[len(ROOT_NAME) + 1:]
            record.bootstrap_module = name
        return True

class ModuleLevelFilter(logging.Filter):
    def __init__(self, module_levels: Dict[str, str]):
        super().__init__()
        # convert level names to numeric
        self.module_levels = {m: getattr(logging, str(lvl).upper(), logging.INFO) for m, lvl in (module_levels or {}).items()}

    def filter(self, record):
        mod = getattr(record, "bootstrap_module", None)
        if mod and mod in self.module_levels:
            return record.levelno >= self.module_levels[mod]
        return True

# ----------------------
# BootstrapLogger (singleton)
# ----------------------
class BootstrapLogger:
    _instance = None
    _singleton_lock = threading.Lock()

    def __new__(cls):
        with cls._singleton_lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._inited = False
        return cls._instance

    def __init__(self):
        if self._inited:
            return
        self._lock = threading.RLock()
        self._root = logging.getLogger(ROOT_NAME)
        self._root.propagate = False
        self._handlers: List[logging.Handler] = []
        self._filters: List[logging.Filter] = []
        self._metrics: Dict[str, int] = {lvl: 0 for lvl in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")}
        self._jsonl_path: Optional[Path] = None
        self._root.addFilter(self._count_levels_filter)
        self._inited = True
        self._configured = False

    def _count_levels_filter(self, record):
        name = record.levelname
        if name in self._metrics:
            self._metrics[name] += 1
        return True

    # ----------------------
    # Configuration
    # ----------------------
    def configure(self, cfg: Optional[Dict[str, Any]] = None, stream=None):
        """Apply the logging section (defaults to the loaded config's)."""
        if cfg is None:
            cfg = get_config().section("logging")
        with self._lock:
            for h in list(self._handlers):
                self._root.removeHandler(h)
                h.close()
            self._handlers.clear()
            for f in list(self._filters):
                self._root.removeFilter(f)
            self._filters.clear()

            name_filter = ModuleNameFilter()
            module_filter = ModuleLevelFilter(cfg.get("module_levels", {}) or {})

            def _add(handler: logging.Handler):
                handler.addFilter(name_filter)
                handler.addFilter(module_filter)
                self._root.addHandler(handler)
                self._handlers.append(handler)

            level = getattr(logging, str(cfg.get("level", "INFO")).upper(), logging.INFO)
            ch = logging.StreamHandler(stream or sys.stdout)
            ch.setLevel(level)
            ch.setFormatter(ColorFormatter(cfg.get("format") or DEFAULT_FORMAT, datefmt=cfg.get("datefmt", "%H:%M:%S"), color=bool(cfg.get("color", True))))
            _add(ch)
            lowest = level

            if cfg.get("file"):
                file_path = Path(cfg["file"]).expanduser()
                file_path.parent.mkdir(parents=True, exist_ok=True)
                max_bytes = cfg.get("max_size_bytes") or human_size_to_bytes(cfg.get("max_size", "10M")) or 10 * 1024 * 1024
                fh = logging.handlers.RotatingFileHandler(str(file_path), maxBytes=max_bytes, backupCount=int(cfg.get("backups", 3)), encoding="utf-8")
                file_level = getattr(logging, str(cfg.get("file_level", "DEBUG")).upper(), logging.DEBUG)
                fh.setLevel(file_level)
                fh.setFormatter(logging.Formatter(FILE_FORMAT))
                _add(fh)
                lowest = min(lowest, file_level)

            jsonl_cfg = cfg.get("jsonl") or {}
            if jsonl_cfg.get("enabled") and jsonl_cfg.get("path"):
                path = Path(jsonl_cfg["path"]).expanduser()
                path.parent.mkdir(parents=True, exist_ok=True)
                jh = logging.FileHandler(str(path), encoding="utf-8")
                jsonl_level = getattr(logging, str(jsonl_cfg.get("level", "INFO")).upper(), logging.INFO)
                jh.setLevel(jsonl_level)
                jh.setFormatter(JSONLineFormatter())
                _add(jh)
                self._jsonl_path = path
                lowest = min(lowest, jsonl_level)
            else:
                self._jsonl_path = None

            self._root.setLevel(lowest)
            self._configured = True
            _logger.debug("logging: configuration applied")

    def _ensure_configured(self):
        if not self._configured:
            self.configure()

    # ----------------------
    # Public API
    # ----------------------
    def get_logger(self, module_name: str) -> logging.LoggerAdapter:
        """Return a LoggerAdapter that injects 'bootstrap_module' into records."""
        self._ensure_configured()
        return logging.LoggerAdapter(self._root, {"bootstrap_module": module_name})

    def stream_build_output(self, module: str, line: str, level: int = logging.INFO):
        """Log one line of an external build's output."""
        self.get_logger(module).log(level, line.rstrip("\n"))

    def get_metrics(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._metrics)

# ----------------------
# Public factory
# ----------------------
_GLOBAL_LOGGER = BootstrapLogger()

def get_logger(module: str) -> logging.LoggerAdapter:
    return _GLOBAL_LOGGER.get_logger(module)

def configure(cfg: Optional[Dict[str, Any]] = None, stream=None):
    return _GLOBAL_LOGGER.configure(cfg, stream=stream)

def stream_build_output(module: str, line: str, level: int = logging.INFO):
    return _GLOBAL_LOGGER.stream_build_output(module, line, level=level)

def get_metrics() -> Dict[str, int]:
    return _GLOBAL_LOGGER.get_metrics()
