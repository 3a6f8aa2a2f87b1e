# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""Centralized path resolution for SpawnKeeper.

The supervisor keeps its state relative to a base directory: PID files in
``tmp/`` and logs in ``log/``.  The base directory defaults to the current
working directory and can be overridden via the SPAWNKEEPER_HOME
environment variable.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "spawnkeeper.json"
SUPERVISOR_PID_FILENAME = "spawnkeeper.pid"


def get_data_dir() -> Path:
    """Return the runtime base directory, respecting SPAWNKEEPER_HOME."""
    env_val = os.environ.get("SPAWNKEEPER_HOME")
    if env_val:
        return Path(env_val).expanduser().resolve()
    return Path.cwd()


def get_config_path() -> Path:
    return get_data_dir() / CONFIG_FILENAME


def resolve_path(path: Path) -> Path:
    """Anchor a relative *path* at the runtime base directory."""
    path = Path(path).expanduser()
    if path.is_absolute():
        return path
    return get_data_dir() / path
