# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""Recursive process-tree termination.

Task bodies may fork workers of their own without telling anyone, so the
only way to find them is to walk the live process table by parent pid.
Descendants are signalled depth-first before the root.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from collections.abc import Callable
from pathlib import Path

from spawnkeeper.exceptions import ProcessNotFoundError, SignalNotPermittedError

logger = logging.getLogger(__name__)

PROC_ROOT = Path("/proc")


def _read_ppid(status_file: Path) -> int | None:
    """Return the ``PPid:`` value from a ``/proc/<pid>/status`` file."""
    try:
        with status_file.open(encoding="utf-8", errors="replace") as f:
            for line in f:
                if line.startswith("PPid:"):
                    return int(line.split()[1])
    except (OSError, ValueError, IndexError):
        return None
    return None


def send_signal(pid: int, signum: int) -> None:
    """Send *signum* to *pid*.

    Raises:
        ProcessNotFoundError: If *pid* does not exist.
        SignalNotPermittedError: If we may not signal *pid*.
    """
    try:
        os.kill(pid, signum)
    except ProcessLookupError:
        raise ProcessNotFoundError(pid) from None
    except PermissionError:
        raise SignalNotPermittedError(pid, signum) from None


def process_listing() -> str:
    """Return ``ps uxf`` output for debug logs, or an empty string."""
    try:
        result = subprocess.run(
            ["ps", "uxf"], capture_output=True, text=True, timeout=5, check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Process listing unavailable: %s", e)
        return ""
    return result.stdout


class ProcessTreeTerminator:
    """Kills a process and, optionally, all of its descendants."""

    def __init__(
        self,
        proc_root: Path = PROC_ROOT,
        kill: Callable[[int, int], None] = send_signal,
        signum: int = signal.SIGKILL,
    ):
        self.proc_root = Path(proc_root)
        self.kill = kill
        self.signum = signum

    def children_of(self, pid: int) -> list[int]:
        """Find live processes whose parent pid is *pid*."""
        children: list[int] = []
        try:
            entries = list(self.proc_root.iterdir())
        except OSError as e:
            logger.warning("Cannot scan %s for children of %d: %s", self.proc_root, pid, e)
            return children
        for entry in entries:
            if not entry.name.isdigit():
                continue
            if _read_ppid(entry / "status") == pid:
                children.append(int(entry.name))
        return children

    def stop(self, task_id: str, pid: int | None, recursive: bool = True) -> list[int]:
        """Terminate *pid*, descendants first when *recursive*.

        Signal failures (process already gone, not permitted) are
        swallowed; the process table may change at any moment.

        Returns:
            Pids signalled, in signalling order.
        """
        if not pid:
            return []
        signalled: list[int] = []
        self._stop(task_id, pid, recursive, signalled, set())
        return signalled

    def _stop(
        self,
        task_id: str,
        pid: int,
        recursive: bool,
        signalled: list[int],
        seen: set[int],
    ) -> None:
        if pid in seen:
            return
        seen.add(pid)

        if recursive:
            for child in self.children_of(pid):
                self._stop(task_id, child, True, signalled, seen)

        logger.info("Stopping process %d (%s)", pid, task_id)
        try:
            self.kill(pid, self.signum)
        except ProcessNotFoundError:
            logger.debug("Process %d (%s) already gone", pid, task_id)
            return
        except SignalNotPermittedError:
            logger.warning("Not permitted to stop process %d (%s)", pid, task_id)
            return
        signalled.append(pid)
