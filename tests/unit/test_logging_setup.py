"""Unit tests for spawnkeeper/logging_config.py."""
# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import logging

from spawnkeeper.logging_config import LOG_FILENAME, setup_logging, task_context


def _flush() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestSetupLogging:
    def test_console_only(self):
        assert setup_logging(level="INFO") is None

        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_json_file_carries_task_context(self, tmp_path):
        log_path = setup_logging(level="DEBUG", log_dir=tmp_path / "log")
        assert log_path == tmp_path / "log" / LOG_FILENAME

        logger = logging.getLogger("spawnkeeper.tests")
        with task_context("mailer"):
            logger.info("Started process %d (%s)", 1000, "mailer")
        logger.warning("outside")
        _flush()

        lines = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
        started = lines[-2]
        assert started["event"] == "Started process 1000 (mailer)"
        assert started["task"] == "mailer"
        assert started["level"] == "info"
        assert started["logger"] == "spawnkeeper.tests"
        assert "timestamp" in started
        assert "task" not in lines[-1]

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(level="LOUD")
        assert logging.getLogger().level == logging.INFO

