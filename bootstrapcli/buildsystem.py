# bootstrapcli/buildsystem.py
# -*- coding: utf-8 -*-
"""
buildsystem.py - native build stages of the three dependent repositories

Main API:
  runner = BuildStageRunner(build_config, work_dir, synchronizer)
  outputs = runner.run_all()   # BuildOutputs(coresetup_bin, coreclr_bin, corefx_bin)

Behaviour:
  - Stages run in a fixed order: core-setup host, coreclr native, corefx native
  - Each build's combined stdout/stderr is streamed to the log and tee'd to a log file
    that is kept on disk
  - coreclr and corefx report where their binaries went only in their output; the
    path is recovered by matching a known log line prefix
  - Non-zero exit or a missing marker raises BuildToolFailure
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from bootstrapcli.args import BuildConfiguration
from bootstrapcli.config import get_build_config
from bootstrapcli.errors import BuildToolFailure
from bootstrapcli.logging import get_logger, stream_build_output
from bootstrapcli.repo_sync import RepositorySynchronizer

logger = get_logger("buildsystem")

CORECLR_MARKER = "Product binaries are available at "
COREFX_MARKER = "Build files have been written to: "

CORECLR_SKIP_FLAGS = [
    "-skipgenerateversion",
    "-skipmscorlib",
    "-skiprestore",
    "-skiprestoreoptdata",
    "-skipnuget",
    "-nopgooptimize",
]


@dataclass(frozen=True)
class BuildOutputs:
    coresetup_bin: Path
    coreclr_bin: Path
    corefx_bin: Path


# (cmd, cwd, log_path, stream_module) -> returncode
CommandRunner = Callable[[List[str], Path, Path, str], int]


def _tee_run(cmd: List[str], cwd: Path, log_path: Path, module: str) -> int:
    """Run cmd in cwd, stream combined output to the logger and to log_path. Returns rc."""
    logger.debug("RUN: %s (cwd=%s, log=%s)", " ".join(cmd), cwd, log_path)
    stream = get_build_config().get("stream_output", True)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "w", encoding="utf-8") as log:
        try:
            proc = subprocess.Popen(cmd, cwd=str(cwd), stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                    env=dict(os.environ), text=True, errors="replace")
        except OSError as e:
            log.write(f"failed to start {cmd[0]}: {e}\n")
            logger.error("buildsystem: cannot start %s: %s", cmd[0], e)
            return 127
        for line in proc.stdout:
            log.write(line)
            if stream:
                stream_build_output(module, line)
        return proc.wait()


def extract_marker_path(log_text: str, marker: str) -> Optional[Path]:
    """
    Path following marker on the last log line containing it, or None.

    Expected input: free-form build output where one line looks like
      "<anything><marker><path>"
    """
    found = None
    for line in log_text.splitlines():
        idx = line.rfind(marker)
        if idx >= 0:
            rest = line[idx + len(marker):].strip()
            if rest:
                found = rest
    return Path(found) if found else None


def require_marker_path(log_path: Path, marker: str) -> Path:
    try:
        text = log_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise BuildToolFailure(f"cannot read build log {log_path}: {e}", log_path=log_path) from e
    path = extract_marker_path(text, marker)
    if path is None:
        raise BuildToolFailure(f"build log does not contain '{marker.strip()}'", log_path=log_path)
    return path


class BuildStageRunner:
    def __init__(self, build: BuildConfiguration, work_dir: Path, synchronizer: RepositorySynchronizer,
                 runner: CommandRunner = _tee_run, component_version: Optional[str] = None):
        self.build = build
        self.work_dir = Path(work_dir)
        self.sync = synchronizer
        self.runner = runner
        self.component_version = component_version or str(get_build_config().get("component_version", "2.0.0"))

    def _invoke(self, stage: str, cmd: List[str], cwd: Path, log_path: Path) -> None:
        rc = self.runner(cmd, cwd, log_path, stage)
        if rc != 0:
            logger.error("buildsystem: %s build failed with exit status %s, see %s", stage, rc, log_path)
            raise BuildToolFailure(f"{stage} build failed with exit status {rc}", exit_code=rc, log_path=log_path)

    # --- core-setup ---
    def coresetup_command(self, commit: str) -> List[str]:
        v = self.component_version
        return ["src/corehost/build.sh", "--arch", self.build.arch,
                "--hostver", v, "--apphostver", v, "--fxrver", v, "--policyver", v,
                "--commithash", commit]

    def build_coresetup(self) -> Path:
        logger.info("**** BUILDING CORE-SETUP NATIVE COMPONENTS ****")
        repo = self.sync.repo_dir("core-setup")
        commit = self.sync.rev_parse_head("core-setup")
        self._invoke("core-setup", self.coresetup_command(commit), repo, repo / "core-setup.log")
        return repo / "cli"

    # --- coreclr ---
    def coreclr_command(self) -> List[str]:
        cmd = ["./build.sh", self.build.configuration, self.build.arch]
        if self.build.clang:
            cmd.append(self.build.clang)
        return cmd + CORECLR_SKIP_FLAGS

    def build_coreclr(self) -> Path:
        logger.info("**** BUILDING CORECLR NATIVE COMPONENTS ****")
        repo = self.sync.repo_dir("coreclr")
        log_path = repo / "coreclr.log"
        self._invoke("coreclr", self.coreclr_command(), repo, log_path)
        path = require_marker_path(log_path, CORECLR_MARKER)
        if not path.is_absolute():
            path = repo / path
        logger.info("CoreCLR binaries will be copied from %s", path)
        return path

    # --- corefx ---
    def corefx_command(self) -> List[str]:
        cmd = ["corefx/src/Native/build-native.sh", self.build.arch, self.build.configuration]
        if self.build.clang:
            cmd.append(self.build.clang)
        return cmd + [self.build.os]

    def build_corefx(self) -> Path:
        logger.info("**** BUILDING COREFX NATIVE COMPONENTS ****")
        log_path = self.work_dir / "corefx.log"
        self._invoke("corefx", self.corefx_command(), self.work_dir, log_path)
        path = require_marker_path(log_path, COREFX_MARKER)
        if not path.is_absolute():
            path = self.work_dir / path
        logger.info("CoreFX binaries will be copied from %s", path)
        return path

    def run_all(self) -> BuildOutputs:
        coresetup = self.build_coresetup()
        coreclr = self.build_coreclr()
        corefx = self.build_corefx()
        return BuildOutputs(coresetup_bin=coresetup, coreclr_bin=coreclr, corefx_bin=corefx)

    def describe(self) -> Dict[str, str]:
        return {"arch": self.build.arch, "configuration": self.build.configuration,
                "clang": self.build.clang or "", "os": self.build.os,
                "component_version": self.component_version}
