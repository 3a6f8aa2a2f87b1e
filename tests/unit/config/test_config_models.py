"""Unit tests for spawnkeeper/config/models.py."""
# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from spawnkeeper.config import SupervisorConfig, TaskConfig, load_config, save_config
from spawnkeeper.exceptions import ConfigNotFoundError, ConfigValidationError
from spawnkeeper.supervisor.task import NamedExternalTask


def _write(path: Path, data: object) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestModels:
    def test_defaults(self):
        config = SupervisorConfig()

        assert config.interval == 60.0
        assert config.pid_dir == Path("tmp")
        assert config.log_dir == Path("log")
        assert config.tasks == {}

    def test_task_defaults(self):
        task = TaskConfig(task="myapp.jobs:send_mail")

        assert task.max_threads == 1
        assert task.max_life is None
        assert task.priority is None
        assert task.reload is None

    @pytest.mark.parametrize("field, value", [("max_threads", 0), ("max_life", 0), ("max_life", -5)])
    def test_task_bounds(self, field, value):
        with pytest.raises(ValidationError):
            TaskConfig(task="myapp.jobs:send_mail", **{field: value})

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            SupervisorConfig(interval=0)

    @pytest.mark.parametrize("task_id", ["", ".", "..", "a/b", "a\\b"])
    def test_task_id_must_be_file_name_safe(self, task_id):
        with pytest.raises(ValidationError, match="PID file name"):
            SupervisorConfig(tasks={task_id: TaskConfig(task="x:y")})

    def test_unknown_reload_value_is_accepted(self):
        task = TaskConfig(task="x:y", reload="sometimes")
        assert task.reload == "sometimes"

    def test_task_definitions_preserve_order(self):
        config = SupervisorConfig(tasks={
            "mailer": TaskConfig(task="myapp.jobs:send_mail", max_threads=2, max_life=3600),
            "indexer": TaskConfig(task="myapp.jobs:index", priority=10, reload="all"),
        })

        definitions = config.task_definitions()

        assert list(definitions) == ["mailer", "indexer"]
        mailer = definitions["mailer"]
        assert mailer.task_body == NamedExternalTask("myapp.jobs:send_mail")
        assert mailer.max_threads == 2
        assert mailer.max_life == 3600
        indexer = definitions["indexer"]
        assert indexer.priority == 10
        assert indexer.reload == "all"


class TestLoadSave:
    def test_load(self, tmp_path):
        path = _write(tmp_path / "spawnkeeper.json", {
            "interval": 30,
            "tasks": {"mailer": {"task": "myapp.jobs:send_mail", "max_threads": 3}},
        })

        config = load_config(path)

        assert config.interval == 30
        assert config.tasks["mailer"].max_threads == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "spawnkeeper.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigValidationError, match="Invalid JSON"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        path = _write(tmp_path / "spawnkeeper.json", {"tasks": {"mailer": {"task": "x:y", "max_threads": 0}}})

        with pytest.raises(ConfigValidationError, match="Invalid config"):
            load_config(path)

    def test_save_then_load(self, tmp_path):
        config = SupervisorConfig(
            interval=15,
            pid_dir=Path("run/pids"),
            tasks={"mailer": TaskConfig(task="myapp.jobs:send_mail", max_life=60.5)},
        )
        path = tmp_path / "nested" / "spawnkeeper.json"

        save_config(config, path)

        assert path.read_text(encoding="utf-8").endswith("\n")
        assert load_config(path) == config
