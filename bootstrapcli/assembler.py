# bootstrapcli/assembler.py
# -*- coding: utf-8 -*-
"""
Assembles the target distribution out of the freshly built binaries.

Layout:
  <output>/dotnet
  <output>/shared/Microsoft.NETCore.App/<framework>/   coreclr *so, corerun, crossgen,
                                                       corehost, host libs, System.* libs
  <output>/sdk/<sdk>/                                  libhostpolicy.so, libhostfxr.so
  <output>/host/fxr/<fxr>/                             libhostfxr.so

After copying, the runner, compiler and launcher are marked as allowed to create
executable memory mappings when the marking tool (paxctl) is installed.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from bootstrapcli.args import BuildConfiguration
from bootstrapcli.buildsystem import BuildOutputs
from bootstrapcli.config import get_section
from bootstrapcli.errors import AssemblyError
from bootstrapcli.logging import get_logger

logger = get_logger("assembler")

FRAMEWORK_SUBDIR = Path("shared") / "Microsoft.NETCore.App"

CORECLR_EXECUTABLES = ("corerun", "crossgen")
COREFX_PREFIX = "System."

# (source under core-setup/cli, [(destination root, file name)])
# destination roots: "output", "framework", "sdk", "fxr"
CORESETUP_MAPPING: Tuple[Tuple[str, Tuple[Tuple[str, str], ...]], ...] = (
    ("exe/dotnet/dotnet", (("output", "dotnet"), ("framework", "corehost"))),
    ("dll/libhostpolicy.so", (("framework", "libhostpolicy.so"), ("sdk", "libhostpolicy.so"))),
    ("fxr/libhostfxr.so", (("framework", "libhostfxr.so"), ("fxr", "libhostfxr.so"), ("sdk", "libhostfxr.so"))),
)


def _safe_copy(src: Path, dst: Path):
    if not src.is_file():
        raise AssemblyError(f"expected build output {src} is missing")
    dst.parent.mkdir(parents=True, exist_ok=True)
    tmp = dst.with_name(dst.name + ".tmp")
    shutil.copy2(src, tmp)
    os.replace(tmp, dst)


def copy_seed(seed_cli: Path, output: Path):
    """Copy the contents of the seed installation into the (empty) output tree."""
    logger.info("assembler: copying seed %s into %s", seed_cli, output)
    if not seed_cli.is_dir():
        raise AssemblyError(f"seed cli {seed_cli} is not a directory")
    shutil.copytree(seed_cli, output, symlinks=True, dirs_exist_ok=True)


def reset_output(output: Path):
    """Destroy any previous tree at output and recreate it empty."""
    if output.exists():
        logger.info("assembler: removing previous output %s", output)
        shutil.rmtree(output)
    output.mkdir(parents=True, exist_ok=True)


class Hardener:
    """Capability-gated 'allow executable memory mappings' marking."""

    def __init__(self, tool: Optional[str] = None, args: Optional[List[str]] = None):
        cfg = get_section("hardening")
        self.tool = tool or cfg.get("tool") or "paxctl"
        self.args = list(args if args is not None else cfg.get("args") or ["-c", "-m"])
        self._path = shutil.which(self.tool)

    @property
    def available(self) -> bool:
        return self._path is not None

    def mark(self, binary: Path) -> bool:
        if not self.available:
            logger.debug("assembler: %s not installed, skipping hardening of %s", self.tool, binary)
            return False
        proc = subprocess.run([self._path] + self.args + [str(binary)], stdout=subprocess.PIPE,
                              stderr=subprocess.STDOUT, text=True)
        if proc.returncode != 0:
            logger.warning("assembler: %s failed on %s: %s", self.tool, binary, (proc.stdout or "").strip())
            return False
        return True


class ArtifactAssembler:
    def __init__(self, build: BuildConfiguration, output: Path, framework_version: str, sdk_version: str,
                 fxr_version: str, hardener: Optional[Hardener] = None):
        self.build = build
        self.output = Path(output)
        self.framework_dir = self.output / FRAMEWORK_SUBDIR / framework_version
        self.sdk_dir = self.output / "sdk" / sdk_version
        self.fxr_dir = self.output / "host" / "fxr" / fxr_version
        self.hardener = hardener or Hardener()
        self.copied: List[Path] = []

    def _roots(self) -> Dict[str, Path]:
        return {"output": self.output, "framework": self.framework_dir, "sdk": self.sdk_dir, "fxr": self.fxr_dir}

    def _copy(self, src: Path, dst: Path):
        _safe_copy(src, dst)
        self.copied.append(dst)

    def make_layout(self):
        for d in (self.framework_dir, self.sdk_dir, self.fxr_dir):
            d.mkdir(parents=True, exist_ok=True)

    def copy_coreclr(self, coreclr_bin: Path):
        libs = sorted(p for p in coreclr_bin.glob("*so") if p.is_file())
        if not libs:
            raise AssemblyError(f"no shared libraries found in {coreclr_bin}")
        for lib in libs:
            self._copy(lib, self.framework_dir / lib.name)
        for exe in CORECLR_EXECUTABLES:
            self._copy(coreclr_bin / exe, self.framework_dir / exe)

    def copy_coresetup(self, coresetup_bin: Path):
        roots = self._roots()
        for rel, destinations in CORESETUP_MAPPING:
            src = coresetup_bin / rel
            for root, name in destinations:
                self._copy(src, roots[root] / name)

    def copy_corefx(self, corefx_bin: Path):
        libs = sorted(p for p in corefx_bin.glob(f"*/{COREFX_PREFIX}*") if p.is_file())
        if not libs:
            raise AssemblyError(f"no {COREFX_PREFIX}* libraries found under {corefx_bin}")
        for lib in libs:
            self._copy(lib, self.framework_dir / lib.name)

    def copy_corelib(self):
        corelib = self.build.corelib
        if corelib is None:
            return
        logger.info("assembler: overriding %s with %s", corelib.name, corelib)
        self._copy(corelib, self.framework_dir / corelib.name)

    def harden(self) -> List[Path]:
        targets = [self.framework_dir / "corerun", self.framework_dir / "crossgen",
                   self.output / "dotnet", self.framework_dir / "corehost"]
        if not self.hardener.available:
            logger.debug("assembler: hardening skipped, %s not available", self.hardener.tool)
            return []
        return [t for t in targets if self.hardener.mark(t)]

    def assemble(self, outputs: BuildOutputs) -> List[Path]:
        logger.info("**** Copying new binaries to %s ****", self.output)
        self.make_layout()
        self.copy_coreclr(outputs.coreclr_bin)
        self.copy_coresetup(outputs.coresetup_bin)
        self.copy_corefx(outputs.corefx_bin)
        self.copy_corelib()
        self.harden()
        return list(self.copied)
