# bootstrapcli/commit_hash.py
# -*- coding: utf-8 -*-
"""
Commit hash extraction from seed binaries.

The native binaries of a seed installation embed the commit they were built from:
  - libcoreclr.so / System.Native.so carry a "@(#)" version stamp string that
    contains the 40 hex digit commit
  - the dotnet launcher carries the bare commit string

Strings are scraped the way `strings` does (runs of >= 4 printable ASCII bytes).
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from bootstrapcli.errors import CommitHashNotFound
from bootstrapcli.logging import get_logger
from bootstrapcli.repo_sync import RepoPin, REPOSITORIES

logger = get_logger("commit_hash")

BUILD_STAMP_MARKER = "@(#)"
MIN_STRING_LEN = 4

_PRINTABLE_RUN_RE = re.compile(rb"[\x20-\x7e\t]{%d,}" % MIN_STRING_LEN)
_HASH_RE = re.compile(r"[a-f0-9]{40}")

FRAMEWORK_SUBDIR = Path("shared") / "Microsoft.NETCore.App"

# repository -> (binary relative to the framework dir or seed root, needs build stamp)
HASH_SOURCES = {
    "coreclr": ("framework", "libcoreclr.so", True),
    "corefx": ("framework", "System.Native.so", True),
    "core-setup": ("root", "dotnet", False),
}


def iter_strings(data: bytes) -> Iterator[str]:
    for m in _PRINTABLE_RUN_RE.finditer(data):
        yield m.group(0).decode("ascii")


def find_commit_hash(data: bytes, marker: Optional[str] = None) -> str:
    """
    Return the first 40 hex digit token in the string table of data.
    With marker, only strings containing marker are considered.
    Raises CommitHashNotFound when nothing matches.
    """
    for s in iter_strings(data):
        if marker and marker not in s:
            continue
        m = _HASH_RE.search(s)
        if m:
            return m.group(0)
    raise CommitHashNotFound(f"no commit hash found{' next to ' + repr(marker) if marker else ''}")


def commit_hash_from_file(path: Union[str, Path], marker: Optional[str] = None) -> str:
    p = Path(path)
    try:
        data = p.read_bytes()
    except OSError as e:
        raise CommitHashNotFound(f"cannot read {p}: {e}") from e
    try:
        return find_commit_hash(data, marker)
    except CommitHashNotFound as e:
        raise CommitHashNotFound(f"{p}: {e}") from e


def extract_pins(seed_cli: Union[str, Path], framework_version: str) -> Dict[str, RepoPin]:
    """Pins for every repository; a repository whose hash is not found gets commit=None."""
    seed = Path(seed_cli)
    framework_dir = seed / FRAMEWORK_SUBDIR / framework_version
    pins: Dict[str, RepoPin] = {}
    for name in REPOSITORIES:
        where, filename, stamped = HASH_SOURCES[name]
        binary = (framework_dir if where == "framework" else seed) / filename
        try:
            commit = commit_hash_from_file(binary, BUILD_STAMP_MARKER if stamped else None)
        except CommitHashNotFound as e:
            logger.warning("commit_hash: %s; %s will be cloned at its default branch tip", e, name)
            commit = None
        pins[name] = RepoPin(name, commit)
    return pins


if __name__ == "__main__":
    import argparse
    from bootstrapcli.versions import max_version
    ap = argparse.ArgumentParser(prog="bootstrapcli-hashes", description="Print commit pins of a seed installation")
    ap.add_argument("seed")
    ap.add_argument("--framework-version", help="defaults to the newest framework in the seed")
    args = ap.parse_args()
    fw = args.framework_version or str(max_version(Path(args.seed) / FRAMEWORK_SUBDIR))
    for pin in extract_pins(args.seed, fw).values():
        print(f"{pin.name}: {pin.commit or '<none>'}")
