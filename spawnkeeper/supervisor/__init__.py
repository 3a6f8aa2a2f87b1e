# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0
"""
Process supervision package.

Keeps a declared number of forked instances running per task, backed by
per-slot PID files so that state survives supervisor restarts.
"""

from __future__ import annotations

from spawnkeeper.supervisor.instances import InstanceTable
from spawnkeeper.supervisor.liveness import LivenessProber, is_alive
from spawnkeeper.supervisor.manager import POLLING_INTERVAL, ShutdownToken, TaskSupervisor
from spawnkeeper.supervisor.pid_store import PidFileEntry, PidFileStore
from spawnkeeper.supervisor.process_handle import HandleKind, ProcessHandle, wait
from spawnkeeper.supervisor.resources import ClosableResources
from spawnkeeper.supervisor.task import (
    InlineTask,
    InstanceRecord,
    NamedExternalTask,
    ReloadPolicy,
    TaskDefinition,
    import_task,
)
from spawnkeeper.supervisor.terminator import ProcessTreeTerminator, send_signal

__all__ = [
    "ClosableResources",
    "HandleKind",
    "InlineTask",
    "InstanceRecord",
    "InstanceTable",
    "LivenessProber",
    "NamedExternalTask",
    "PidFileEntry",
    "PidFileStore",
    "POLLING_INTERVAL",
    "ProcessHandle",
    "ProcessTreeTerminator",
    "ReloadPolicy",
    "ShutdownToken",
    "TaskDefinition",
    "TaskSupervisor",
    "import_task",
    "is_alive",
    "send_signal",
    "wait",
]
