# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""Configuration models for the task-definition table.

Defines Pydantic models for ``spawnkeeper.json`` and load / save helpers.
A minimal file looks like::

    {
      "interval": 60,
      "tasks": {
        "mailer": {"task": "myapp.jobs:send_mail", "max_threads": 2, "max_life": 3600}
      }
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from spawnkeeper.exceptions import ConfigNotFoundError, ConfigValidationError
from spawnkeeper.supervisor.task import NamedExternalTask, TaskDefinition

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class TaskConfig(BaseModel):
    """One entry of the task table."""

    task: str  # "package.module:callable", resolved in the forked child
    max_threads: int = Field(default=1, ge=1)
    max_life: float | None = Field(default=None, gt=0)  # seconds
    priority: int | None = None  # nice value
    # Free text: unknown values are reported at startup instead of failing the load.
    reload: str | None = None


class SupervisorConfig(BaseModel):
    interval: float = Field(default=60.0, gt=0)
    pid_dir: Path = Path("tmp")
    log_dir: Path = Path("log")
    log_level: str = "INFO"
    tasks: dict[str, TaskConfig] = {}

    @model_validator(mode="after")
    def _validate_task_ids(self) -> SupervisorConfig:
        for task_id in self.tasks:
            if not task_id or task_id in (".", "..") or "/" in task_id or "\\" in task_id:
                raise ValueError(f"Task id {task_id!r} cannot be used in a PID file name")
        return self

    def task_definitions(self) -> dict[str, TaskDefinition]:
        """Convert the table into task definitions, preserving order."""
        return {
            task_id: TaskDefinition(
                id=task_id,
                task_body=NamedExternalTask(cfg.task),
                max_threads=cfg.max_threads,
                max_life=cfg.max_life,
                priority=cfg.priority,
                reload=cfg.reload,
            )
            for task_id, cfg in self.tasks.items()
        }


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_config(path: Path) -> SupervisorConfig:
    """Load and validate the configuration at *path*.

    Raises:
        ConfigNotFoundError: If *path* does not exist.
        ConfigValidationError: If the file is not valid JSON or fails validation.
    """
    if not path.is_file():
        raise ConfigNotFoundError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)
    try:
        data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s: %s", path, exc)
        raise ConfigValidationError(f"Invalid JSON in {path}: {exc}") from exc

    try:
        config = SupervisorConfig.model_validate(data)
    except ValidationError as exc:
        logger.error("Invalid config %s: %s", path, exc)
        raise ConfigValidationError(f"Invalid config {path}: {exc}") from exc

    logger.info("Loaded %d task(s) from %s", len(config.tasks), path)
    return config


def save_config(config: SupervisorConfig, path: Path) -> None:
    """Persist *config* to disk as pretty-printed JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.model_dump(mode="json")
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    logger.debug("Config saved to %s", path)
