"""Integration tests for real forked instances: start, evict, tree kill."""

# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from spawnkeeper.supervisor.manager import TaskSupervisor
from spawnkeeper.supervisor.process_handle import ProcessHandle
from spawnkeeper.supervisor.task import TaskDefinition
from spawnkeeper.supervisor.terminator import ProcessTreeTerminator

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not Path("/proc/self/status").exists(), reason="requires /proc"),
]


def _gone(pid: int) -> bool:
    """True once *pid* has exited; an unreaped zombie counts as exited."""
    try:
        status = Path(f"/proc/{pid}/status").read_text()
    except (FileNotFoundError, ProcessLookupError):
        return True
    return "\nState:\tZ" in status


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


def _sleeper(marker: Path):
    def body() -> None:
        marker.write_text(str(os.getpid()))
        time.sleep(30)

    return body


def _forking_sleeper(marker: Path):
    def body() -> None:
        grandchild = os.fork()
        if grandchild == 0:
            time.sleep(30)
            os._exit(0)
        marker.write_text(str(grandchild))
        time.sleep(30)

    return body


def test_child_runs_body_and_exits(tmp_path):
    marker = tmp_path / "ran"

    handle = ProcessHandle.spawn(lambda: marker.write_text("ok"))

    assert handle.wait(timeout=5)
    assert marker.read_text() == "ok"


def test_supervisor_starts_and_evicts(tmp_path):
    marker = tmp_path / "pid"
    task = TaskDefinition(id="sleeper", task_body=_sleeper(marker), max_life=0.5)
    sup = TaskSupervisor([task], pid_dir=tmp_path / "tmp")

    try:
        sup.tick()
        assert _wait_for(marker.exists)
        pid = int(marker.read_text())
        assert (tmp_path / "tmp" / "sleeper.1.pid").read_text() == str(pid)

        time.sleep(0.6)
        sup.evict_expired(task)

        assert _wait_for(lambda: _gone(pid))
        assert not (tmp_path / "tmp" / "sleeper.1.pid").exists()
    finally:
        for pid in sup.instances.pids():
            sup.stop_instance(task, sup.instances.get("sleeper", pid))


def test_recursive_stop_kills_grandchildren(tmp_path):
    marker = tmp_path / "grandchild"
    handle = ProcessHandle.spawn(_forking_sleeper(marker))
    assert _wait_for(lambda: marker.exists() and marker.read_text() != "")
    grandchild = int(marker.read_text())

    signalled = ProcessTreeTerminator().stop("forker", handle.pid)

    assert signalled == [grandchild, handle.pid]
    assert _wait_for(lambda: _gone(handle.pid))
    assert _wait_for(lambda: _gone(grandchild))
