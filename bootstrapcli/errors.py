# bootstrapcli/errors.py
# -*- coding: utf-8 -*-
"""Exception taxonomy shared by the pipeline stages and the CLI."""

from __future__ import annotations
from pathlib import Path
from typing import Optional


class BootstrapError(Exception):
    """Base for fatal pipeline errors. exit_code is what the CLI exits with."""
    exit_code = 1

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code:
            self.exit_code = exit_code


class UsageError(BootstrapError):
    """Bad, missing or contradictory flags, or a malformed forced version."""
    exit_code = 2


class SynchronizationError(BootstrapError):
    """git clone / checkout / rev-parse failed."""


class BuildToolFailure(BootstrapError):
    """External build exited non-zero or its log lacks the output-path marker."""

    def __init__(self, message: str, exit_code: Optional[int] = None, log_path: Optional[Path] = None):
        super().__init__(message, exit_code)
        self.log_path = log_path

    def __str__(self):
        msg = super().__str__()
        if self.log_path:
            return f"{msg} (log: {self.log_path})"
        return msg


class AssemblyError(BootstrapError):
    """An expected source binary was missing when assembling the target tree."""


class CommitHashNotFound(BootstrapError):
    """No commit hash could be scraped out of a seed binary."""
