# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0
"""Shared test fixtures: PID directories, fake process tables, fake spawns."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest


# ── Filesystem ────────────────────────────────────────────


@pytest.fixture
def pid_dir(tmp_path: Path) -> Path:
    d = tmp_path / "tmp"
    d.mkdir()
    return d


@pytest.fixture
def fake_proc(tmp_path: Path) -> Callable[[int, int], Path]:
    """Build a synthetic ``/proc`` tree.  Returns ``add(pid, ppid)``."""
    root = tmp_path / "proc"
    root.mkdir()
    (root / "self").mkdir()

    def add(pid: int, ppid: int) -> Path:
        entry = root / str(pid)
        entry.mkdir()
        (entry / "status").write_text(
            f"Name:\tworker\nState:\tS (sleeping)\nPid:\t{pid}\nPPid:\t{ppid}\n",
            encoding="utf-8",
        )
        return root

    add.root = root  # type: ignore[attr-defined]
    return add


# ── Processes ─────────────────────────────────────────────


class FakeProcesses:
    """Stand-in for fork(): hands out pids and answers liveness probes."""

    def __init__(self, first_pid: int = 1000):
        self.alive: set[int] = set()
        self.spawned: list[int] = []
        self._next = first_pid

    def spawn(self, body, priority=None, resources=None) -> MagicMock:
        pid = self._next
        self._next += 1
        self.alive.add(pid)
        self.spawned.append(pid)
        return MagicMock(pid=pid)

    def probe(self, pid: int) -> bool:
        return pid in self.alive

    def kill(self, pid: int) -> None:
        self.alive.discard(pid)


@pytest.fixture
def procs() -> FakeProcesses:
    return FakeProcesses()


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """Drop handlers installed by setup_logging() during a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
