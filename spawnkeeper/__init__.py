# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0
"""SpawnKeeper: keep a fixed set of forked worker processes running."""

from __future__ import annotations

__version__ = "0.1.0"
