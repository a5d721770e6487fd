# bootstrapcli/toolchain.py
"""
Bootstrap pipeline - builds a distribution for a new runtime identifier.

Stages (strictly sequential, each one's output is state on disk):
  - reset output tree (seed mode: copy the seed into it)
  - detect versions (seed mode) or use the forced one
  - detect commit pins (seed mode) or use HEAD
  - sync coreclr / corefx / core-setup
  - build core-setup, coreclr, corefx
  - assemble binaries into the output tree
  - patch the deps manifest (seed mode)
  - write a run record into the work dir
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from bootstrapcli import assembler, commit_hash, versions
from bootstrapcli.args import Invocation
from bootstrapcli.assembler import ArtifactAssembler, FRAMEWORK_SUBDIR, Hardener
from bootstrapcli.buildsystem import BuildOutputs, BuildStageRunner, CommandRunner
from bootstrapcli.errors import UsageError
from bootstrapcli.logging import get_logger, get_metrics
from bootstrapcli.manifest import ManifestPatcher
from bootstrapcli.repo_sync import RepoPin, RepositorySynchronizer, Runner, head_pins

logger = get_logger("toolchain")

RECORD_NAME = "bootstrap-record.json"


@dataclass(frozen=True)
class DistributionVersions:
    framework: str
    sdk: str
    fxr: str


def _uid() -> str:
    return uuid.uuid4().hex[:10]


def _now() -> int:
    return int(time.time())


def _log_counts_since(before: Dict[str, int]) -> Dict[str, int]:
    now = get_metrics()
    return {
        "warnings": now["WARNING"] - before.get("WARNING", 0),
        "errors": now["ERROR"] + now["CRITICAL"] - before.get("ERROR", 0) - before.get("CRITICAL", 0),
    }


def _is_within(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


class BootstrapPipeline:
    def __init__(self, inv: Invocation, git_runner: Optional[Runner] = None,
                 build_runner: Optional[CommandRunner] = None, hardener: Optional[Hardener] = None,
                 reporter=None):
        self.inv = inv
        sync_kwargs = {"runner": git_runner} if git_runner else {}
        self.sync = RepositorySynchronizer(inv.work_dir, **sync_kwargs)
        build_kwargs = {"runner": build_runner} if build_runner else {}
        self.builder = BuildStageRunner(inv.build, inv.work_dir, self.sync, **build_kwargs)
        self.hardener = hardener
        # reporter(versions, pins) is called once both are known (the CLI prints a table)
        self.reporter = reporter

    def _check_paths(self):
        seed = self.inv.seed_cli
        if seed is not None and (_is_within(seed, self.inv.output_path) or _is_within(self.inv.output_path, seed)):
            raise UsageError(f"output path {self.inv.output_path} overlaps the seed cli {seed}")

    def detect_versions(self) -> DistributionVersions:
        if not self.inv.seed_mode:
            v = self.inv.version
            return DistributionVersions(v, v, v)
        logger.info("**** DETECTING VERSIONS IN SEED CLI ****")
        seed = self.inv.seed_cli
        return DistributionVersions(
            framework=str(versions.max_version(seed / FRAMEWORK_SUBDIR)),
            sdk=str(versions.max_version(seed / "sdk")),
            fxr=str(versions.max_version(seed / "host" / "fxr")),
        )

    def detect_pins(self, vers: DistributionVersions) -> Dict[str, RepoPin]:
        if not self.inv.seed_mode:
            return head_pins()
        logger.info("**** DETECTING GIT COMMIT HASHES ****")
        return commit_hash.extract_pins(self.inv.seed_cli, vers.framework)

    def write_record(self, record: Dict[str, Any]) -> Path:
        path = self.inv.work_dir / RECORD_NAME
        path.write_text(json.dumps(record, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
        return path

    def run(self) -> Dict[str, Any]:
        inv = self.inv
        self._check_paths()
        counts_before = get_metrics()
        rec: Dict[str, Any] = {"id": f"bootstrap-{_uid()}", "rid": inv.build.runtime_id,
                               "mode": "seed" if inv.seed_mode else "version",
                               "output": str(inv.output_path), "started_at": _now()}

        assembler.reset_output(inv.output_path)
        inv.work_dir.mkdir(parents=True, exist_ok=True)
        if inv.seed_mode:
            assembler.copy_seed(inv.seed_cli, inv.output_path)

        vers = self.detect_versions()
        logger.info("Framework version: %s", vers.framework)
        logger.info("SDK version:       %s", vers.sdk)
        logger.info("FXR version:       %s", vers.fxr)
        rec["versions"] = asdict(vers)

        pins = self.detect_pins(vers)
        for name, pin in pins.items():
            logger.info("%-16s %s", f"{name} hash:", pin.commit or "")
        rec["pins"] = {name: pin.commit for name, pin in pins.items()}
        if self.reporter:
            self.reporter(vers, pins)

        rec["repos"] = self.sync.sync_all(pins)
        rec["build"] = self.builder.describe()
        outputs: BuildOutputs = self.builder.run_all()
        rec["outputs"] = {k: str(v) for k, v in asdict(outputs).items()}

        asm = ArtifactAssembler(inv.build, inv.output_path, vers.framework, vers.sdk, vers.fxr, hardener=self.hardener)
        asm.assemble(outputs)
        rec["copied"] = len(asm.copied)

        if inv.seed_mode:
            seed_fw = inv.seed_cli / FRAMEWORK_SUBDIR / vers.framework
            rec["manifest"] = str(ManifestPatcher(inv.build.runtime_id).patch(seed_fw, asm.framework_dir))
        else:
            logger.info("manifest: no seed manifest in version mode, skipping")

        rec["log_counts"] = _log_counts_since(counts_before)
        rec["finished_at"] = _now()
        rec["record"] = str(self.write_record(rec))
        logger.info("**** Bootstrap CLI was successfully built ****")
        return rec
