# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""Centralized logging configuration for SpawnKeeper.

Uses structlog in stdlib-compatible mode so that plain
``logging.getLogger(__name__)`` calls in the supervisor modules are routed
through structlog's processor pipeline (context binding, JSON output).

Provides:
- setup_logging(): console + rotating JSON file handlers
- task_context(): bind the task id to every record emitted inside a block
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from logging.handlers import RotatingFileHandler
from pathlib import Path

import orjson
import structlog

LOG_FILENAME = "spawnkeeper.log"


def task_context(task_id: str) -> AbstractContextManager:
    """Bind ``task=<task_id>`` into the structlog context for a block."""
    return structlog.contextvars.bound_contextvars(task=task_id)


# ── Shared Processors ──────────────────────────────────────────


def _build_shared_processors() -> list:
    """Processors applied to every stdlib record before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _orjson_serializer(obj: object, **_kw) -> str:  # noqa: ANN001
    return orjson.dumps(obj, default=str).decode("utf-8")


# ── Main Setup ─────────────────────────────────────────────────


def _formatter(renderer) -> structlog.stdlib.ProcessorFormatter:  # noqa: ANN001
    # Records from logging.getLogger() run through the shared chain first,
    # which merges in the bound task id.
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=_build_shared_processors(),
    )


def setup_logging(level: str = "INFO", log_dir: Path | None = None) -> Path | None:
    """Configure logging for the supervisor process.

    Console output is human-readable.  When *log_dir* is given, records are
    also appended as JSON lines to ``log_dir/spawnkeeper.log``.

    Returns:
        The path of the log file, or None when file logging is disabled.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(_formatter(structlog.dev.ConsoleRenderer()))
    root.addHandler(console)

    if log_dir is None:
        return None

    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILENAME
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        _formatter(structlog.processors.JSONRenderer(serializer=_orjson_serializer))
    )
    root.addHandler(file_handler)
    return log_path
