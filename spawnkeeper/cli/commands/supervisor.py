# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import atexit
import logging
import os
import signal
import sys
import time
from pathlib import Path

from spawnkeeper.config import SupervisorConfig, load_config
from spawnkeeper.exceptions import ConfigError
from spawnkeeper.paths import SUPERVISOR_PID_FILENAME, get_config_path, resolve_path
from spawnkeeper.supervisor.liveness import is_alive

logger = logging.getLogger(__name__)


# ── PID helpers ───────────────────────────────────────────


def _load(args: argparse.Namespace) -> SupervisorConfig:
    path = Path(args.config).expanduser() if args.config else get_config_path()
    try:
        return load_config(path)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


def _get_pid_file(config: SupervisorConfig) -> Path:
    """Return the path to the supervisor's own PID file."""
    return resolve_path(config.pid_dir) / SUPERVISOR_PID_FILENAME


def _write_pid_file(pid_file: Path) -> None:
    pid_file.parent.mkdir(parents=True, exist_ok=True)
    pid_file.write_text(str(os.getpid()), encoding="utf-8")
    logger.info("PID file written: %s (pid=%d)", pid_file, os.getpid())


def _remove_pid_file(pid_file: Path) -> None:
    """Remove the PID file if it still belongs to this process."""
    try:
        if _read_pid(pid_file) not in (None, os.getpid()):
            return
        pid_file.unlink(missing_ok=True)
        logger.debug("PID file removed: %s", pid_file)
    except OSError as exc:
        logger.warning("Failed to remove PID file %s: %s", pid_file, exc)


def _read_pid(pid_file: Path) -> int | None:
    """Read the PID from *pid_file*, or None if missing or invalid."""
    if not pid_file.exists():
        return None
    try:
        return int(pid_file.read_text(encoding="utf-8").strip())
    except (ValueError, OSError) as exc:
        logger.warning("Invalid PID file %s: %s", pid_file, exc)
        return None


def _stop_supervisor(pid_file: Path, timeout: float = 10.0) -> bool:
    """Send SIGHUP to the recorded supervisor and wait for it to exit.

    Returns:
        True if the supervisor stopped (or was not running), False if it
        did not exit within *timeout*.
    """
    pid = _read_pid(pid_file)
    if pid is None:
        print("No supervisor PID file found. Supervisor is not running.")
        return True
    if not is_alive(pid):
        print(f"Stale PID file (pid={pid}). Supervisor is not running. Cleaning up.")
        pid_file.unlink(missing_ok=True)
        return True

    print(f"Stopping supervisor (pid={pid})...")
    try:
        os.kill(pid, signal.SIGHUP)
    except ProcessLookupError:
        print("Supervisor already exited.")
        pid_file.unlink(missing_ok=True)
        return True
    except PermissionError:
        print(f"Error: Permission denied sending signal to pid={pid}.")
        return False

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not is_alive(pid):
            print("Supervisor stopped.")
            pid_file.unlink(missing_ok=True)
            return True
        time.sleep(0.2)

    print(f"Error: Supervisor (pid={pid}) did not stop within {timeout}s.")
    return False


# ── Commands ──────────────────────────────────────────────


def cmd_start(args: argparse.Namespace) -> None:
    """Run the supervisor in the foreground until SIGINT or SIGHUP."""
    from spawnkeeper.logging_config import setup_logging
    from spawnkeeper.supervisor.manager import TaskSupervisor

    config = _load(args)
    if args.interval is not None:
        config = config.model_copy(update={"interval": args.interval})

    pid_file = _get_pid_file(config)
    existing_pid = _read_pid(pid_file)
    if existing_pid is not None and is_alive(existing_pid):
        if not args.replace:
            print(f"Error: Supervisor is already running (pid={existing_pid}).")
            print("Use 'spawnkeeper stop' first, or 'spawnkeeper start --replace'.")
            sys.exit(1)
        if not _stop_supervisor(pid_file):
            sys.exit(1)
    elif existing_pid is not None:
        logger.info("Stale PID file found (pid=%d). Cleaning up.", existing_pid)
        pid_file.unlink(missing_ok=True)

    setup_logging(
        level=args.log_level or config.log_level,
        log_dir=resolve_path(config.log_dir),
    )

    _write_pid_file(pid_file)
    atexit.register(_remove_pid_file, pid_file)

    supervisor = TaskSupervisor.from_config(config)
    try:
        exit_code = supervisor.run()
    finally:
        _remove_pid_file(pid_file)
    sys.exit(exit_code)


def cmd_stop(args: argparse.Namespace) -> None:
    """Stop the running supervisor, leaving its instances running."""
    config = _load(args)
    if not _stop_supervisor(_get_pid_file(config), timeout=args.timeout):
        sys.exit(1)


def cmd_status(args: argparse.Namespace) -> None:
    """Print each task's slots as recorded in the PID files."""
    from spawnkeeper.supervisor.pid_store import PidFileStore

    config = _load(args)
    store = PidFileStore(resolve_path(config.pid_dir))
    now = time.time()

    supervisor_pid = _read_pid(_get_pid_file(config))
    if supervisor_pid is not None and is_alive(supervisor_pid):
        print(f"Supervisor: running (pid={supervisor_pid})")
    else:
        print("Supervisor: not running")

    for task_id, task in config.tasks.items():
        entries = {entry.slot: entry for entry in store.read_all(task_id, task.max_threads, prune=False)}
        live = sum(1 for entry in entries.values() if is_alive(entry.pid))
        print(f"{task_id}: {live}/{task.max_threads} running")
        for slot in range(1, task.max_threads + 1):
            entry = entries.get(slot)
            if entry is None:
                print(f"  [{slot}] -")
                continue
            state = "alive" if is_alive(entry.pid) else "dead"
            print(f"  [{slot}] pid={entry.pid} {state} age={int(now - entry.mtime)}s")
