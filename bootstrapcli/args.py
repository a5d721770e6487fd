# bootstrapcli/args.py
# -*- coding: utf-8 -*-
"""
Invocation parsing and validation.

Flags are single-dash and case-insensitive (-rid, -RID). Unknown arguments and
-h/--help exit with status 1; validation failures raise UsageError (status 2).
"""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from bootstrapcli.errors import UsageError
from bootstrapcli.versions import parse_forced_version

DEFAULT_OS = "Linux"
DEFAULT_CONFIGURATION = "debug"

USAGE = """\
Builds a bootstrap CLI from sources
Usage: bootstrapcli [BuildType] -rid <Rid> (-seedcli <SeedCli> | -version <Version>) [-os <OS>] [-clang <Major.Minor>] [-corelib <CoreLib>] [-outputpath <path>]

Options:
  BuildType               Type of build (-debug, -release), default: -debug
  -clang <Major.Minor>    Override of the version of clang compiler to use
  -corelib <CoreLib>      Path to System.Private.CoreLib.dll, default: use the System.Private.CoreLib.dll from the seed CLI
  -os <OS>                Operating system (used for corefx build), default: Linux
  -rid <Rid>              Runtime identifier including the architecture part (e.g. rhel.6-x64)
  -version <Version>      Force version number that must be in the format [0-9]+.[0-9]+.[0-9]+ - MUTUALLY EXCLUSIVE with -seedcli
  -seedcli <SeedCli>      Seed CLI used to generate the target CLI - MUTUALLY EXCLUSIVE with -version
  -outputpath <path>      Optional output directory to contain the generated cli, default: <Rid>/dotnetcli
  -config <path>          Optional bootstrapcli configuration file

When -version is used, then the latest commit of coreclr, corefx and core-setup default
branches is checked out, and -version option value is used to fake the release number.
One and only one of the -version or -seedcli options must be given.

For example, this will build latest core faking the version to be 2.0.99:
  bootstrapcli -rid rhel.6-x64 -version 2.0.99
"""


@dataclass(frozen=True)
class BuildConfiguration:
    runtime_id: str
    arch: str
    os: str = DEFAULT_OS
    configuration: str = DEFAULT_CONFIGURATION
    clang: Optional[str] = None
    corelib: Optional[Path] = None


@dataclass(frozen=True)
class Invocation:
    build: BuildConfiguration
    output_path: Path
    work_dir: Path
    seed_cli: Optional[Path] = None
    version: Optional[str] = None
    config_path: Optional[str] = None

    @property
    def seed_mode(self) -> bool:
        return self.seed_cli is not None


class _Parser(argparse.ArgumentParser):
    """argparse with the exit codes of the original script."""

    def error(self, message):
        # a flag without its value counts as a missing required value
        if "expected one argument" in message:
            raise UsageError(message)
        self.exit(1, f"{self.prog}: {message}\n")


def make_parser() -> argparse.ArgumentParser:
    ap = _Parser(prog="bootstrapcli", add_help=False, allow_abbrev=False, usage=argparse.SUPPRESS)
    ap.add_argument("-h", "--help", action="store_true")
    ap.add_argument("-rid", dest="rid")
    ap.add_argument("-os", dest="os", default=DEFAULT_OS)
    ap.add_argument("-debug", dest="configuration", action="store_const", const="debug")
    ap.add_argument("-release", dest="configuration", action="store_const", const="release")
    ap.add_argument("-corelib", dest="corelib")
    ap.add_argument("-seedcli", dest="seedcli")
    ap.add_argument("-clang", dest="clang")
    ap.add_argument("-outputpath", dest="outputpath")
    ap.add_argument("-version", dest="version")
    ap.add_argument("-config", dest="config")
    ap.set_defaults(configuration=DEFAULT_CONFIGURATION)
    return ap


def _lower_flags(argv: List[str]) -> List[str]:
    return [a.lower() if a.startswith("-") else a for a in argv]


def realpath(p: str, base: Optional[Path] = None) -> Path:
    if base is not None and not os.path.isabs(p):
        p = os.path.join(str(base), p)
    return Path(os.path.realpath(os.path.expanduser(p)))


def arch_of(runtime_id: str) -> str:
    """Everything after the first '-' of the rid."""
    return runtime_id.split("-", 1)[1] if "-" in runtime_id else runtime_id


def resolve(argv: Optional[List[str]] = None, cwd: Optional[Path] = None, work_dir: Optional[str] = None) -> Invocation:
    """
    Parse argv into an Invocation. Prints usage and exits 1 on -h/--help,
    exits 1 on unknown arguments, raises UsageError on invalid combinations.
    """
    argv = sys.argv[1:] if argv is None else argv
    base = Path(cwd) if cwd else Path.cwd()
    ap = make_parser()
    ns = ap.parse_args(_lower_flags(argv))
    if ns.help:
        sys.stdout.write(USAGE)
        raise SystemExit(1)

    if ns.version is not None and parse_forced_version(ns.version) is None:
        raise UsageError("-version option value format must be digits.digits.digits")
    if ns.seedcli and ns.version:
        raise UsageError("-seedcli and -version are mutually exclusive")
    if not ns.seedcli and not ns.version:
        raise UsageError("One of -seedcli or -version is required")
    if not ns.rid:
        raise UsageError("Missing the required -rid argument")

    rid = ns.rid
    build = BuildConfiguration(
        runtime_id=rid,
        arch=arch_of(rid),
        os=ns.os,
        configuration=ns.configuration,
        clang=f"clang{ns.clang}" if ns.clang else None,
        corelib=realpath(ns.corelib, base) if ns.corelib else None,
    )
    output = realpath(ns.outputpath, base) if ns.outputpath else realpath(os.path.join(rid, "dotnetcli"), base)
    wd = realpath(work_dir, base) if work_dir else base / rid
    return Invocation(
        build=build,
        output_path=output,
        work_dir=wd,
        seed_cli=realpath(ns.seedcli, base) if ns.seedcli else None,
        version=ns.version,
        config_path=ns.config,
    )
