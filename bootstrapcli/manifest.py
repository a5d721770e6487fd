# bootstrapcli/manifest.py
# -*- coding: utf-8 -*-
"""
Registers a new runtime identifier in Microsoft.NETCore.App.deps.json.

The seed manifest is written for linux-x64. Its three spellings of that rid
(runtime.linux-x64, runtimes/linux-x64, Version=vX.Y/linux-x64) are replaced by
the new rid and the rid is added to the "runtimes" map with the fallback chain
unix, unix-x64, any, base. This is a textual rewrite, the JSON is not parsed.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from bootstrapcli.config import get_config
from bootstrapcli.errors import AssemblyError
from bootstrapcli.logging import get_logger

logger = get_logger("manifest")

MANIFEST_NAME = "Microsoft.NETCore.App.deps.json"
DEFAULT_RID = "linux-x64"
# TODO: derive the fallback chain from the rid's architecture instead of always using unix-x64
FALLBACK_CHAIN = ("unix", "unix-x64", "any", "base")

RUNTIMES_OPEN = '"runtimes": {'


def runtimes_entry(runtime_id: str) -> str:
    chain = ", ".join(f'"{r}"' for r in FALLBACK_CHAIN)
    return f'\n    "{runtime_id}": [\n      {chain}\n    ],'


def patch_text(text: str, runtime_id: str, default_rid: str = DEFAULT_RID) -> str:
    rid = re.escape(default_rid)
    text = re.sub(r"runtime\." + rid, lambda m: f"runtime.{runtime_id}", text)
    text = re.sub(r"runtimes/" + rid, lambda m: f"runtimes/{runtime_id}", text)
    text = re.sub(r"Version=v([0-9].[0-9])/" + rid, lambda m: f"Version=v{m.group(1)}/{runtime_id}", text)
    entry = runtimes_entry(runtime_id)
    return text.replace(RUNTIMES_OPEN, RUNTIMES_OPEN + entry)


class ManifestPatcher:
    def __init__(self, runtime_id: str, default_rid: Optional[str] = None):
        self.runtime_id = runtime_id
        self.default_rid = default_rid or get_config().get("manifest.default_rid", DEFAULT_RID)

    def patch(self, seed_framework_dir: Path, target_framework_dir: Path) -> Path:
        """Read the seed manifest, write the patched copy into the target framework dir."""
        logger.info("**** Adding new rid to %s ****", MANIFEST_NAME)
        src = Path(seed_framework_dir) / MANIFEST_NAME
        dst = Path(target_framework_dir) / MANIFEST_NAME
        try:
            text = src.read_text(encoding="utf-8")
        except OSError as e:
            raise AssemblyError(f"cannot read seed manifest {src}: {e}") from e
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_text(patch_text(text, self.runtime_id, self.default_rid), encoding="utf-8")
        logger.debug("manifest: wrote %s", dst)
        return dst
