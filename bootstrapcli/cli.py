#!/usr/bin/env python3
# bootstrapcli/cli.py
"""
bootstrapcli command line entry point

- resolves and validates the invocation (bootstrapcli.args)
- loads configuration and applies logging settings
- runs the bootstrap pipeline and maps fatal errors to exit codes
- uses rich for stage banners and the versions/hashes summary
"""

from __future__ import annotations

import dataclasses
import sys
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bootstrapcli import args as args_mod
from bootstrapcli import config as config_mod
from bootstrapcli import logging as logging_mod
from bootstrapcli.errors import BootstrapError, UsageError
from bootstrapcli.repo_sync import RepoPin
from bootstrapcli.toolchain import BootstrapPipeline

console = Console()

# -----------------------
# Small pretty helpers
# -----------------------
def print_ok(msg: str):
    console.print(f"[bold green]✔[/] {escape(msg)}")

def print_warn(msg: str):
    console.print(f"[bold yellow]![/] {escape(msg)}")

def print_err(msg: str):
    console.print(f"[bold red]✖[/] {escape(msg)}", highlight=False)

def print_info(msg: str):
    console.print(f"[cyan]{escape(msg)}[/cyan]")

def print_summary(vers, pins: Dict[str, RepoPin]):
    table = Table(title="Bootstrap inputs", show_header=True)
    table.add_column("Component")
    table.add_column("Value")
    table.add_row("Framework version", escape(vers.framework))
    table.add_row("SDK version", escape(vers.sdk))
    table.add_row("FXR version", escape(vers.fxr))
    for name, pin in pins.items():
        table.add_row(f"{name} hash", pin.commit or "[yellow]<none, default branch tip>[/]")
    console.print(table)

# -----------------------
# main
# -----------------------
def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        inv = args_mod.resolve(argv)
    except UsageError as e:
        print_err(str(e))
        return e.exit_code

    cfg = config_mod.load(inv.config_path)
    logging_mod.configure(cfg.section("logging"))
    logger = logging_mod.get_logger("cli")
    work_dir = cfg.get("repos.work_dir")
    if work_dir:
        inv = dataclasses.replace(inv, work_dir=Path(work_dir))

    print_info(f"Building bootstrap CLI for {inv.build.runtime_id} ({inv.build.configuration}) into {inv.output_path}")
    try:
        rec = BootstrapPipeline(inv, reporter=print_summary).run()
    except BootstrapError as e:
        logger.error("bootstrap failed: %s", e)
        print_err(str(e))
        return e.exit_code
    except KeyboardInterrupt:
        print_warn("interrupted")
        return 130
    print_ok(f"Bootstrap CLI was successfully built in {rec['output']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
