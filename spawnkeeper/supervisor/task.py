"""
Task definitions, task-body variants and per-instance records.
"""

# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import importlib
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from spawnkeeper.exceptions import TaskResolutionError


# ── Reload Policy ──────────────────────────────────────────────────

class ReloadPolicy(str, Enum):
    """Action applied at startup to instances recovered from PID files."""
    NONE = "none"        # Leave recovered instances running
    PARENT = "parent"    # Kill recovered instances, leave their descendants
    ALL = "all"          # Kill recovered instances and all their descendants


# ── Task Bodies ────────────────────────────────────────────────────

def import_task(name: str) -> Callable[[], Any]:
    """Resolve ``"package.module:attr"`` (or ``"package.module.attr"``)."""
    if ":" in name:
        module_name, _, attr_path = name.partition(":")
    else:
        module_name, _, attr_path = name.rpartition(".")
    if not module_name or not attr_path:
        raise TaskResolutionError(f"Invalid task reference: {name!r}")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise TaskResolutionError(f"Cannot import {module_name!r} for task {name!r}: {e}") from e

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as e:
            raise TaskResolutionError(f"Task {name!r} not found: {e}") from e

    if not callable(target):
        raise TaskResolutionError(f"Task {name!r} is not callable")
    return target


@dataclass(frozen=True)
class InlineTask:
    """Task body given directly as a callable."""
    func: Callable[[], Any]

    def __call__(self) -> None:
        self.func()

    def describe(self) -> str:
        return getattr(self.func, "__qualname__", repr(self.func))


@dataclass(frozen=True)
class NamedExternalTask:
    """Task body referenced by name, resolved inside the forked child."""
    name: str
    resolver: Callable[[str], Callable[[], Any]] = field(default=import_task, compare=False)

    def __call__(self) -> None:
        self.resolver(self.name)()

    def describe(self) -> str:
        return self.name


TaskBody = Union[InlineTask, NamedExternalTask]


def as_task_body(value: TaskBody | Callable[[], Any] | str) -> TaskBody:
    """Wrap a bare callable or task name in the matching body variant."""
    if isinstance(value, (InlineTask, NamedExternalTask)):
        return value
    if isinstance(value, str):
        return NamedExternalTask(value)
    if callable(value):
        return InlineTask(value)
    raise TypeError(f"Unsupported task body: {value!r}")


# ── Definitions & Records ──────────────────────────────────────────

@dataclass(frozen=True)
class TaskDefinition:
    """A named task and the quota the supervisor keeps running for it."""
    id: str
    task_body: TaskBody
    max_threads: int = 1
    max_life: float | None = None      # Seconds; None disables eviction
    priority: int | None = None        # Nice value applied in the child
    reload: str | None = None          # ReloadPolicy value; free text on purpose

    def __post_init__(self) -> None:
        if self.max_threads < 1:
            raise ValueError(f"max_threads must be >= 1 for task {self.id!r}")
        object.__setattr__(self, "task_body", as_task_body(self.task_body))


@dataclass
class InstanceRecord:
    """One live (or very recently live) process occupying a task slot."""
    task_id: str
    pid: int
    started_at: float
    slot: int | None = None            # None when the PID file write failed

    def age(self, now: float) -> float:
        return now - self.started_at
