# bootstrapcli/repo_sync.py
"""
repo_sync.py
- Makes sure coreclr, corefx and core-setup exist as git clones under the work dir
- An existing clone is never touched (sources may have been patched by hand between runs)
- A fresh clone is checked out at its pinned commit when there is one
- Every git call gets an explicit cwd; the process working directory never changes
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from bootstrapcli.config import get_remotes
from bootstrapcli.errors import SynchronizationError
from bootstrapcli.logging import get_logger

logger = get_logger("repo_sync")

# sync order
REPOSITORIES: Tuple[str, ...] = ("coreclr", "corefx", "core-setup")

HEAD = "HEAD"

Runner = Callable[[List[str], Optional[Path]], Tuple[int, str, str]]


@dataclass(frozen=True)
class RepoPin:
    name: str
    commit: Optional[str] = HEAD

    @property
    def pinned(self) -> bool:
        """True when a concrete commit has to be checked out."""
        return bool(self.commit) and self.commit != HEAD


def _run(cmd: List[str], cwd: Optional[Path] = None) -> Tuple[int, str, str]:
    logger.debug("RUN: %s (cwd=%s)", " ".join(cmd), str(cwd) if cwd else None)
    try:
        proc = subprocess.run(cmd, cwd=(str(cwd) if cwd else None), stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
    except OSError as e:
        return 127, "", str(e)
    return proc.returncode, proc.stdout or "", proc.stderr or ""


def head_pins() -> Dict[str, RepoPin]:
    return {name: RepoPin(name, HEAD) for name in REPOSITORIES}


class RepositorySynchronizer:
    def __init__(self, work_dir: Union[str, Path], remotes: Optional[Dict[str, str]] = None, runner: Runner = _run):
        self.work_dir = Path(work_dir)
        self.remotes = remotes if remotes is not None else get_remotes()
        self.runner = runner

    def repo_dir(self, name: str) -> Path:
        return self.work_dir / name

    def _git(self, args: List[str], cwd: Path, what: str) -> str:
        rc, out, err = self.runner(["git"] + args, cwd)
        if rc != 0:
            logger.error("repo_sync: %s failed (rc=%s): %s", what, rc, err.strip())
            raise SynchronizationError(f"{what} failed: {err.strip() or 'exit status ' + str(rc)}", exit_code=rc)
        return out

    def ensure_repo(self, pin: RepoPin) -> Dict[str, object]:
        """
        Clone pin.name unless its directory already exists, then check out the pin.
        Returns a summary dict.
        """
        name = pin.name
        dest = self.repo_dir(name)
        if dest.exists():
            logger.info("repo_sync: %s already present at %s, leaving it alone", name, dest)
            return {"repo": name, "action": "kept", "path": str(dest)}
        url = self.remotes.get(name)
        if not url:
            raise SynchronizationError(f"no remote url configured for {name}")
        logger.info("**** CLONING %s REPOSITORY ****", name.upper())
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self._git(["clone", url, name], self.work_dir, f"git clone {url}")
        if pin.pinned:
            self._git(["checkout", pin.commit], dest, f"git checkout {pin.commit} in {name}")
            return {"repo": name, "action": "cloned", "path": str(dest), "commit": pin.commit}
        return {"repo": name, "action": "cloned", "path": str(dest), "commit": None}

    def sync_all(self, pins: Dict[str, RepoPin]) -> List[Dict[str, object]]:
        results = []
        for name in REPOSITORIES:
            results.append(self.ensure_repo(pins.get(name) or RepoPin(name, None)))
        return results

    def rev_parse_head(self, name: str) -> str:
        """Commit currently checked out in the named repository."""
        return self._git(["rev-parse", "HEAD"], self.repo_dir(name), f"git rev-parse HEAD in {name}").strip()
