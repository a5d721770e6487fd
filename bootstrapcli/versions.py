# bootstrapcli/versions.py
# -*- coding: utf-8 -*-
"""
Version-named directory scanning.

Seed installations keep one directory per version (shared/Microsoft.NETCore.App/2.0.0,
sdk/2.1.0-preview1, ...). max_version() picks the newest one.

Ordering:
  - (major, minor, patch) compared numerically
  - on a tie a release (no tag) beats any prerelease
  - two prereleases compare by plain string order of the tag ("9" > "10")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from bootstrapcli.logging import get_logger

logger = get_logger("versions")

VERSION_DIR_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)(?:-(.+))?$")
FORCED_VERSION_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


@dataclass(frozen=True)
class SemanticVersion:
    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None

    def sort_key(self) -> Tuple[int, int, int, bool, str]:
        # a missing tag sorts above every tag; tags compare as raw strings
        return (self.major, self.minor, self.patch, self.prerelease is None, self.prerelease or "")

    def __lt__(self, other: "SemanticVersion") -> bool:
        return self.sort_key() < other.sort_key()

    def __le__(self, other: "SemanticVersion") -> bool:
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: "SemanticVersion") -> bool:
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: "SemanticVersion") -> bool:
        return self.sort_key() >= other.sort_key()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        return f"{base}-{self.prerelease}" if self.prerelease else base


ZERO = SemanticVersion(0, 0, 0)


def parse_version(text: str) -> Optional[SemanticVersion]:
    """Parse '<major>.<minor>.<patch>[-<tag>]'; None when the text has another shape."""
    m = VERSION_DIR_RE.match(text)
    if not m:
        return None
    return SemanticVersion(int(m.group(1)), int(m.group(2)), int(m.group(3)), m.group(4))


def parse_forced_version(text: str) -> Optional[SemanticVersion]:
    """Strict digits.digits.digits form used by -version."""
    m = FORCED_VERSION_RE.match(text or "")
    if not m:
        return None
    return SemanticVersion(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def pick_max(names: Iterable[str]) -> SemanticVersion:
    candidates = [v for v in (parse_version(n) for n in names) if v is not None]
    if not candidates:
        return ZERO
    return max(candidates, key=SemanticVersion.sort_key)


def max_version(directory: Union[str, Path]) -> SemanticVersion:
    """
    Return the maximal version among the immediate subdirectories of directory.
    Missing directory or no matching entries -> 0.0.0.
    """
    d = Path(directory)
    if not d.is_dir():
        logger.debug("versions: %s does not exist, using %s", d, ZERO)
        return ZERO
    names = [e.name for e in d.iterdir() if e.is_dir()]
    found = pick_max(names)
    logger.debug("versions: %s -> %s (from %d entries)", d, found, len(names))
    return found


if __name__ == "__main__":
    import argparse
    ap = argparse.ArgumentParser(prog="bootstrapcli-versions", description="Print the newest version directory")
    ap.add_argument("dirs", nargs="+")
    args = ap.parse_args()
    for p in args.dirs:
        print(f"{p}: {max_version(p)}")
