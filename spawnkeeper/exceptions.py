# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""Unified exception hierarchy for SpawnKeeper.

All domain-specific exceptions derive from :class:`SpawnKeeperError`,
enabling callers to catch the entire family with a single clause::

    try:
        ...
    except SpawnKeeperError as e:
        logger.error("Supervisor error: %s", e)
"""

from __future__ import annotations


class SpawnKeeperError(Exception):
    """Base exception for all SpawnKeeper errors."""


# ── Process ──────────────────────────────────────────────────


class ProcessError(SpawnKeeperError):
    """Process control errors."""


class ProcessNotFoundError(ProcessError):
    """Target process does not exist (already exited or never existed)."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"No such process: {pid}")
        self.pid = pid


class SignalNotPermittedError(ProcessError):
    """Not permitted to signal the target process."""

    def __init__(self, pid: int, signum: int) -> None:
        super().__init__(f"Not permitted to send signal {signum} to {pid}")
        self.pid = pid
        self.signum = signum


class SpawnError(ProcessError):
    """Forking a new instance failed."""


# ── PID files ────────────────────────────────────────────────


class PidFileError(SpawnKeeperError):
    """PID file could not be read or written."""


# ── Tasks ────────────────────────────────────────────────────


class TaskResolutionError(SpawnKeeperError):
    """A named task could not be resolved to a callable."""


# ── Configuration ────────────────────────────────────────────


class ConfigError(SpawnKeeperError):
    """Configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Configuration file not found."""


class ConfigValidationError(ConfigError):
    """Configuration validation failure."""
