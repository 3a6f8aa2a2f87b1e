"""
Task Supervisor - keeps the declared number of instances running per task.
"""

# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from spawnkeeper.exceptions import (
    PidFileError,
    ProcessNotFoundError,
    SignalNotPermittedError,
    SpawnError,
)
from spawnkeeper.logging_config import task_context
from spawnkeeper.supervisor.instances import InstanceTable
from spawnkeeper.supervisor.liveness import LivenessProber, is_alive
from spawnkeeper.supervisor.pid_store import PidFileStore
from spawnkeeper.supervisor.process_handle import ProcessHandle
from spawnkeeper.supervisor.resources import ClosableResources
from spawnkeeper.supervisor.task import InstanceRecord, ReloadPolicy, TaskDefinition
from spawnkeeper.supervisor.terminator import ProcessTreeTerminator, process_listing, send_signal

if TYPE_CHECKING:
    from spawnkeeper.config.models import SupervisorConfig

logger = logging.getLogger(__name__)

POLLING_INTERVAL = 60.0


# ── Shutdown Token ─────────────────────────────────────────────────

class ShutdownToken:
    """Set by signal handlers, observed by the reconciliation loop."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.exit_code: int = 0
        self.reason: str | None = None

    def request(self, exit_code: int, reason: str) -> None:
        if self._event.is_set():
            return
        self.exit_code = exit_code
        self.reason = reason
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


# ── Task Supervisor ────────────────────────────────────────────────

class TaskSupervisor:
    """
    Reconciliation engine for a fixed table of tasks.

    Responsibilities:
    - Recover instances from PID files at startup and apply reload policies
    - Every ``interval`` seconds, start one instance per task below quota
    - Evict instances older than the task's ``max_life``
    - Interrupt children and exit on SIGINT; exit quietly on SIGHUP
    """

    def __init__(
        self,
        tasks: Mapping[str, TaskDefinition] | Iterable[TaskDefinition],
        interval: float = POLLING_INTERVAL,
        pid_dir: Path = Path("tmp"),
        resources: ClosableResources | None = None,
        terminator: ProcessTreeTerminator | None = None,
        probe: Callable[[int], bool] = is_alive,
        clock: Callable[[], float] = time.time,
    ):
        if isinstance(tasks, Mapping):
            tasks = tasks.values()
        self.tasks: dict[str, TaskDefinition] = {task.id: task for task in tasks}
        self.interval = interval
        self.clock = clock

        self.instances = InstanceTable()
        self.store = PidFileStore(pid_dir)
        self.prober = LivenessProber(self.store, self.instances, probe=probe)
        self.terminator = terminator or ProcessTreeTerminator()
        self.resources = resources if resources is not None else ClosableResources()
        self.shutdown = ShutdownToken()

        self.tick_count = 0
        self._previous_handlers: dict[int, Any] = {}

    @classmethod
    def from_config(
        cls,
        config: SupervisorConfig,
        resources: ClosableResources | None = None,
    ) -> TaskSupervisor:
        """Build a supervisor from a loaded configuration."""
        from spawnkeeper.paths import resolve_path

        return cls(
            config.task_definitions(),
            interval=config.interval,
            pid_dir=resolve_path(config.pid_dir),
            resources=resources,
        )

    # ── Startup ────────────────────────────────────────────────

    def recover(self) -> None:
        """Load PID-file state for every task and apply its reload policy."""
        logger.info("Recovering instances for %d task(s)", len(self.tasks))
        for task in self.tasks.values():
            try:
                records = self.prober.recover(task.id, task.max_threads)
                self.apply_reload(task, records)
            except Exception:
                logger.exception("Recovery failed for task %s", task.id)

    def apply_reload(self, task: TaskDefinition, records: list[InstanceRecord]) -> None:
        """Apply *task*'s reload policy to instances recovered at startup."""
        if task.reload is None:
            return
        try:
            policy = ReloadPolicy(task.reload)
        except ValueError:
            logger.warning(
                "Unrecognized value for reload parameter in %s: %r", task.id, task.reload,
            )
            return

        if policy is ReloadPolicy.NONE:
            return
        recursive = policy is ReloadPolicy.ALL
        logger.info(
            "Reload policy %s for %s: stopping %d recovered instance(s)",
            policy.value, task.id, len(records),
        )
        for record in records:
            self.stop_instance(task, record, recursive=recursive)

    # ── Instance control ──────────────────────────────────────

    def running_count(self, task_id: str) -> int:
        """Live instance count for *task_id*; prunes dead instances."""
        task = self.tasks[task_id]
        return self.prober.running_count(task.id, task.max_threads)

    def start_instance(self, task: TaskDefinition) -> InstanceRecord | None:
        """Fork one instance of *task* and record it.

        A PID file write failure leaves the instance running and tracked
        in memory only.
        """
        if self.shutdown.is_set():
            logger.info("Shutdown requested; not starting %s", task.id)
            return None

        try:
            handle = ProcessHandle.spawn(
                task.task_body, priority=task.priority, resources=self.resources,
            )
        except SpawnError as e:
            logger.error("Failed to start %s: %s", task.id, e)
            return None

        pid = handle.pid
        logger.info("Started process %d (%s)", pid, task.id)

        slot: int | None = None
        try:
            slot = self.store.write(task.id, task.max_threads, pid)
        except PidFileError as e:
            logger.error("PID file write failed for %s pid=%d: %s", task.id, pid, e)

        record = InstanceRecord(task_id=task.id, pid=pid, started_at=self.clock(), slot=slot)
        self.instances.add(record)
        return record

    def stop_instance(
        self,
        task: TaskDefinition,
        record: InstanceRecord,
        recursive: bool = True,
    ) -> None:
        """Kill an instance, then forget it without waiting for its exit."""
        self.terminator.stop(task.id, record.pid, recursive=recursive)
        self.store.remove_pid(task.id, task.max_threads, record.pid)
        self.instances.drop(task.id, record.pid)

    def evict_expired(self, task: TaskDefinition, now: float | None = None) -> list[InstanceRecord]:
        """Stop every instance of *task* that has outlived ``max_life``."""
        if task.max_life is None:
            return []
        if now is None:
            now = self.clock()

        evicted: list[InstanceRecord] = []
        for record in self.instances.for_task(task.id):
            age = record.age(now)
            if age <= task.max_life:
                continue
            logger.info(
                "Instance %d of %s exceeded max_life (%.0fs > %.0fs)",
                record.pid, task.id, age, task.max_life,
            )
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Before process stop (%d):\n%s", record.pid, process_listing())
            self.stop_instance(task, record, recursive=True)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("After process stop (%d):\n%s", record.pid, process_listing())
            evicted.append(record)
        return evicted

    # ── Reconciliation ─────────────────────────────────────────

    def check_task(self, task: TaskDefinition) -> None:
        """Reconcile one task: top up by at most one instance, then evict."""
        with task_context(task.id):
            running = self.running_count(task.id)
            logger.debug("Checking %s: %d/%d running", task.id, running, task.max_threads)

            if running < task.max_threads:
                if self.shutdown.is_set():
                    return
                logger.info(
                    "%s below quota (%d/%d), starting %s",
                    task.id, running, task.max_threads, task.task_body.describe(),
                )
                self.start_instance(task)

            self.evict_expired(task)

    def tick(self) -> None:
        """One reconciliation pass over all tasks, in table order."""
        self.tick_count += 1
        for task in list(self.tasks.values()):
            if self.shutdown.is_set():
                return
            try:
                self.check_task(task)
            except Exception:
                logger.exception("Reconciliation failed for task %s", task.id)

    def dispatch_tick(self) -> threading.Thread:
        """Run :meth:`tick` on its own daemon thread and return immediately."""
        thread = threading.Thread(
            target=self.tick, daemon=True, name=f"tick-{self.tick_count + 1}",
        )
        thread.start()
        return thread

    def run(self, install_signal_handlers: bool = True) -> int:
        """Recover state, then reconcile every ``interval`` seconds.

        Ticks are dispatched without waiting for the previous one, so the
        period between tick starts stays close to ``interval`` and ticks
        may overlap.

        Returns:
            Exit status requested by the signal that stopped the loop.
        """
        if install_signal_handlers:
            self.install_signal_handlers()
        try:
            self.recover()
            logger.info("Reconciliation loop started (interval=%.0fs)", self.interval)
            while not self.shutdown.is_set():
                self.dispatch_tick()
                if self.shutdown.wait(self.interval):
                    break
            logger.info(
                "Reconciliation loop stopped (reason=%s, exit_code=%d)",
                self.shutdown.reason, self.shutdown.exit_code,
            )
            return self.shutdown.exit_code
        finally:
            if install_signal_handlers:
                self.restore_signal_handlers()

    # ── Signals ────────────────────────────────────────────────

    def install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Not in main thread; signal handlers not installed")
            return
        for signum, handler in (
            (signal.SIGINT, self.handle_interrupt),
            (signal.SIGHUP, self.handle_hangup),
        ):
            self._previous_handlers[signum] = signal.signal(signum, handler)

    def restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def handle_interrupt(self, signum: int | None = None, frame: Any = None) -> None:
        """Interrupt every tracked instance and stop the loop with status 1.

        The supervisor does not wait for the children to exit.
        """
        records = self.instances.all()
        process_list = ", ".join(f"{r.task_id} ({r.pid})" for r in records)
        print(f" *** Interrupt received, killing {process_list} ***", flush=True)
        logger.warning("Interrupt received, interrupting %d instance(s)", len(records))

        for record in records:
            try:
                send_signal(record.pid, signal.SIGINT)
            except (ProcessNotFoundError, SignalNotPermittedError) as e:
                logger.debug("Interrupt not delivered: %s", e)
        self.shutdown.request(1, "interrupt")

    def handle_hangup(self, signum: int | None = None, frame: Any = None) -> None:
        """Stop the loop with status 0, leaving instances running."""
        logger.info("Hangup received, exiting and leaving %d instance(s) running", len(self.instances))
        self.shutdown.request(0, "hangup")

    # ── Status ─────────────────────────────────────────────────

    def status(self) -> list[dict[str, Any]]:
        """Snapshot of tracked instances."""
        now = self.clock()
        return [
            {
                "task": record.task_id,
                "slot": record.slot,
                "pid": record.pid,
                "age_sec": round(record.age(now), 1),
            }
            for record in self.instances.all()
        ]
