# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""File-per-slot PID store.

Each task instance slot maps to ``<pid_dir>/<task_id>.<slot>.pid`` holding
the decimal pid of the process occupying it.  External tooling may rely on
this naming, so it must not change.

No locking is performed.  Only the supervisor's reconciliation path writes
here, and slot assignment is first-fit at write time, so two writers racing
for the same slot resolve as last-writer-wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from spawnkeeper.exceptions import PidFileError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PidFileEntry:
    """One PID file as found on disk."""
    task_id: str
    slot: int
    pid: int
    mtime: float


class PidFileStore:
    """Durable mapping from ``(task_id, slot)`` to an OS pid."""

    def __init__(self, pid_dir: Path):
        self.pid_dir = Path(pid_dir)

    def path(self, task_id: str, slot: int = 1) -> Path:
        return self.pid_dir / f"{task_id}.{slot}.pid"

    def read(self, task_id: str, slot: int) -> int | None:
        """Read the pid stored for a slot.

        Returns:
            The pid, or None if the file does not exist.

        Raises:
            PidFileError: If the file exists but does not hold a valid pid.
        """
        path = self.path(task_id, slot)
        try:
            text = path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PidFileError(f"Cannot read {path}: {e}") from e
        try:
            pid = int(text)
        except ValueError:
            raise PidFileError(f"Invalid PID file {path}: {text!r}") from None
        if pid <= 0:
            raise PidFileError(f"Invalid PID file {path}: {text!r}")
        return pid

    def read_all(self, task_id: str, max_threads: int, prune: bool = True) -> list[PidFileEntry]:
        """Return every readable PID file for slots ``1..max_threads``.

        The file's mtime stands in for the instance start time.  Files
        with unparseable content are skipped, and removed when *prune*.
        """
        entries: list[PidFileEntry] = []
        for slot in range(1, max_threads + 1):
            path = self.path(task_id, slot)
            try:
                pid = self.read(task_id, slot)
                if pid is None:
                    continue
                mtime = path.stat().st_mtime
            except FileNotFoundError:
                continue
            except PidFileError as e:
                if prune:
                    logger.warning("%s; removing", e)
                    self.remove(task_id, slot)
                continue
            except OSError as e:
                logger.warning("Cannot stat PID file %s: %s", path, e)
                continue
            entries.append(PidFileEntry(task_id=task_id, slot=slot, pid=pid, mtime=mtime))
        return entries

    def write(self, task_id: str, max_threads: int, pid: int) -> int | None:
        """Record *pid* in the first slot that has no PID file.

        Returns:
            The slot written, or None when every slot is already occupied.

        Raises:
            PidFileError: If the file could not be written.
        """
        self.pid_dir.mkdir(parents=True, exist_ok=True)
        for slot in range(1, max_threads + 1):
            path = self.path(task_id, slot)
            if path.exists():
                continue
            try:
                path.write_text(str(pid), encoding="utf-8")
            except OSError as e:
                raise PidFileError(f"Cannot write {path}: {e}") from e
            logger.debug("PID file written: %s (pid=%d)", path, pid)
            return slot

        logger.warning(
            "No free PID file slot for %s (max_threads=%d); pid %d untracked on disk",
            task_id, max_threads, pid,
        )
        return None

    def remove(self, task_id: str, slot: int) -> bool:
        """Delete the PID file for a slot.  Best-effort.

        Returns:
            True if a file was removed.
        """
        path = self.path(task_id, slot)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Failed to remove PID file %s: %s", path, exc)
            return False
        logger.debug("PID file removed: %s", path)
        return True

    def remove_pid(self, task_id: str, max_threads: int, pid: int) -> int:
        """Delete every slot's PID file that references *pid*.

        Returns:
            Number of files removed.
        """
        removed = 0
        for slot in range(1, max_threads + 1):
            try:
                existing = self.read(task_id, slot)
            except PidFileError:
                continue
            if existing == pid and self.remove(task_id, slot):
                removed += 1
        return removed
