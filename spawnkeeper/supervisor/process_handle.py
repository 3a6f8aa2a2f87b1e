"""
Process handle for forking task instances out of the supervisor.
"""

# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import os
import signal
import sys
import threading
import time
import traceback
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from spawnkeeper.exceptions import SpawnError
from spawnkeeper.supervisor.resources import ClosableResources

logger = logging.getLogger(__name__)


# ── Handle Kind ────────────────────────────────────────────────────

class HandleKind(Enum):
    """What kind of unit of execution a handle controls."""
    PROCESS = "process"     # Forked OS process
    THREAD = "thread"       # Logical thread inside the current process


def _reap(pid: int) -> None:
    """Block until *pid* exits so it never lingers as a zombie."""
    try:
        os.waitpid(pid, 0)
    except ChildProcessError:
        pass


def _run_child(
    body: Callable[[], Any],
    priority: int | None,
    resources: ClosableResources | None,
) -> None:
    """Child side of the fork.  Never returns."""
    try:
        # The supervisor's handlers must not run in the child.
        try:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGHUP, signal.SIG_DFL)
        except ValueError:
            pass

        if resources is not None:
            resources.close_all()

        if priority is not None:
            try:
                os.setpriority(os.PRIO_PROCESS, 0, priority)
            except OSError as e:
                sys.stderr.write(
                    f"spawnkeeper> Cannot set priority {priority} in child[{os.getpid()}]: {e}\n"
                )

        body()

    except Exception as ex:
        sys.stderr.write(
            f"spawnkeeper> Exception in child[{os.getpid()}] - "
            f"{type(ex).__name__}: {ex}\n"
        )
        traceback.print_exc(file=sys.stderr)
    finally:
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.flush()
            except (OSError, ValueError):
                pass
        os._exit(0)


# ── Process Handle ─────────────────────────────────────────────────

class ProcessHandle:
    """
    Handle for one spawned unit of work.

    A PROCESS handle wraps a forked child: the parent gets the pid back
    immediately and the child is detached, meaning a background reaper
    collects its exit status so nobody has to ``wait()`` for it.
    A THREAD handle wraps a daemon thread running the body in-process.
    """

    def __init__(
        self,
        kind: HandleKind,
        pid: int | None = None,
        thread: threading.Thread | None = None,
    ):
        self.kind = kind
        self.pid = pid
        self.thread = thread
        self.spawned_at = time.time()
        self.reaper: threading.Thread | None = None

    def __repr__(self) -> str:
        if self.kind is HandleKind.THREAD:
            name = self.thread.name if self.thread else None
            return f"ProcessHandle(kind=thread, thread={name!r})"
        return f"ProcessHandle(kind=process, pid={self.pid})"

    @classmethod
    def spawn(
        cls,
        body: Callable[[], Any],
        priority: int | None = None,
        resources: ClosableResources | None = None,
    ) -> ProcessHandle:
        """
        Fork a child that runs *body* and return its handle.

        In the child, registered resources are closed, the nice value is
        set when *priority* is given, and *body* is invoked.  Any exception
        escaping *body* is written to the child's stderr; the child then
        exits via ``os._exit`` so it never returns into the parent's stack.

        Raises:
            SpawnError: If ``fork()`` fails.
        """
        try:
            pid = os.fork()
        except OSError as e:
            raise SpawnError(f"fork() failed: {e}") from e

        if pid == 0:
            _run_child(body, priority, resources)

        handle = cls(HandleKind.PROCESS, pid=pid)
        handle.detach()
        return handle

    @classmethod
    def spawn_thread(cls, body: Callable[[], Any], name: str | None = None) -> ProcessHandle:
        """Run *body* on a daemon thread and return its handle."""

        def _target() -> None:
            try:
                body()
            except Exception:
                logger.exception("Exception in spawned thread %s", threading.current_thread().name)

        thread = threading.Thread(target=_target, daemon=True, name=name)
        thread.start()
        return cls(HandleKind.THREAD, thread=thread)

    def detach(self) -> threading.Thread | None:
        """Start a reaper thread for a forked child."""
        if self.kind is not HandleKind.PROCESS or self.pid is None:
            return None
        reaper = threading.Thread(
            target=_reap, args=(self.pid,), daemon=True, name=f"reaper-{self.pid}",
        )
        reaper.start()
        self.reaper = reaper
        return reaper

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the unit of work finishes.

        Args:
            timeout: Seconds to wait at most; None waits forever.

        Returns:
            True if the unit finished, False if *timeout* expired first.
        """
        if self.kind is HandleKind.THREAD:
            if self.thread is None:
                return True
            self.thread.join(timeout)
            return not self.thread.is_alive()

        if self.pid is None:
            return True

        if timeout is None:
            # The reaper may collect the status first; ECHILD then means done.
            _reap(self.pid)
            return True

        deadline = time.monotonic() + timeout
        while True:
            try:
                done_pid, _ = os.waitpid(self.pid, os.WNOHANG)
            except ChildProcessError:
                return True
            if done_pid == self.pid:
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.05)


def wait(handles: ProcessHandle | Iterable[ProcessHandle], timeout: float | None = None) -> bool:
    """Wait for one handle or every handle in *handles*.

    Returns:
        True if all handles finished within *timeout* (per handle).
    """
    if isinstance(handles, ProcessHandle):
        handles = [handles]
    finished = True
    for handle in handles:
        finished = handle.wait(timeout) and finished
    return finished
