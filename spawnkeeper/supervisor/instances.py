# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""In-memory table of tracked instances, keyed by task id and pid."""

from __future__ import annotations

from spawnkeeper.supervisor.task import InstanceRecord


class InstanceTable:
    """Tracked ``InstanceRecord``s, at most one per ``(task_id, pid)``.

    Readers get list snapshots so that overlapping ticks and the signal
    handler can iterate while another tick adds or drops records.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[int, InstanceRecord]] = {}

    def ensure_task(self, task_id: str) -> None:
        self._records.setdefault(task_id, {})

    def add(self, record: InstanceRecord) -> None:
        self._records.setdefault(record.task_id, {})[record.pid] = record

    def get(self, task_id: str, pid: int) -> InstanceRecord | None:
        return self._records.get(task_id, {}).get(pid)

    def drop(self, task_id: str, pid: int) -> InstanceRecord | None:
        return self._records.get(task_id, {}).pop(pid, None)

    def for_task(self, task_id: str) -> list[InstanceRecord]:
        return list(self._records.get(task_id, {}).values())

    def all(self) -> list[InstanceRecord]:
        return [
            record
            for records in list(self._records.values())
            for record in list(records.values())
        ]

    def pids(self) -> list[int]:
        return [record.pid for record in self.all()]

    def count(self, task_id: str) -> int:
        return len(self._records.get(task_id, {}))

    def __len__(self) -> int:
        return len(self.all())
