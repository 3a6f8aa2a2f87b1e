# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from spawnkeeper.config.models import (
    SupervisorConfig,
    TaskConfig,
    load_config,
    save_config,
)

__all__ = [
    "SupervisorConfig",
    "TaskConfig",
    "load_config",
    "save_config",
]
