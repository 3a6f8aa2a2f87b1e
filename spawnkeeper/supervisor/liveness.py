# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""Liveness probing and lazy reclamation of stale instance state."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from spawnkeeper.supervisor.instances import InstanceTable
from spawnkeeper.supervisor.pid_store import PidFileStore
from spawnkeeper.supervisor.task import InstanceRecord

logger = logging.getLogger(__name__)


def is_alive(pid: int) -> bool:
    """Check whether *pid* refers to a live process (signal 0 probe).

    A pid we are not permitted to signal counts as not alive, so that
    its state gets cleaned up instead of being kept on a guess.
    """
    if not pid or pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        logger.debug("Not permitted to probe pid %d; treating as dead", pid)
        return False
    return True


class LivenessProber:
    """Counts live instances and reclaims the state of dead ones.

    ``running_count`` is the only place stale PID files and records are
    removed, and it runs before every quota decision.
    """

    def __init__(
        self,
        store: PidFileStore,
        instances: InstanceTable,
        probe: Callable[[int], bool] = is_alive,
    ):
        self.store = store
        self.instances = instances
        self.probe = probe

    def is_alive(self, pid: int) -> bool:
        return self.probe(pid)

    def running_count(self, task_id: str, max_threads: int) -> int:
        """Count live tracked instances of *task_id*, pruning dead ones."""
        running = 0
        for record in self.instances.for_task(task_id):
            if self.probe(record.pid):
                running += 1
                continue
            removed = self.store.remove_pid(task_id, max_threads, record.pid)
            self.instances.drop(task_id, record.pid)
            logger.info(
                "Instance exited: %s pid=%d (removed %d PID file(s))",
                task_id, record.pid, removed,
            )
        return running

    def recover(self, task_id: str, max_threads: int) -> list[InstanceRecord]:
        """Load instances from PID files, keeping only live ones.

        Files whose process is gone are removed.  The file mtime becomes
        the recovered instance's ``started_at``.
        """
        self.instances.ensure_task(task_id)
        recovered: list[InstanceRecord] = []
        for entry in self.store.read_all(task_id, max_threads):
            if not self.probe(entry.pid):
                logger.info("Removing stale PID file for %s slot %d (pid=%d)", task_id, entry.slot, entry.pid)
                self.store.remove(task_id, entry.slot)
                continue
            if self.instances.get(task_id, entry.pid) is not None:
                # Same pid recorded in two slots; the first one wins.
                logger.warning("Duplicate PID file for %s pid=%d in slot %d", task_id, entry.pid, entry.slot)
                continue
            record = InstanceRecord(
                task_id=task_id, pid=entry.pid, started_at=entry.mtime, slot=entry.slot,
            )
            self.instances.add(record)
            recovered.append(record)
        if recovered:
            logger.info(
                "Recovered %d instance(s) of %s: %s",
                len(recovered), task_id, ", ".join(str(r.pid) for r in recovered),
            )
        return recovered
