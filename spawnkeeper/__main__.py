# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from spawnkeeper.cli.parser import cli_main

if __name__ == "__main__":
    cli_main()
