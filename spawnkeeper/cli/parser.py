# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os
import sys

from spawnkeeper import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spawnkeeper",
        description="SpawnKeeper - keep a fixed set of forked worker processes running",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        default=None,
        help="Task table JSON (default: $SPAWNKEEPER_HOME/spawnkeeper.json)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: SPAWNKEEPER_LOG_LEVEL or the config's log_level)",
    )
    sub = parser.add_subparsers(dest="command")

    # ── Start ─────────────────────────────────────────────
    p_start = sub.add_parser("start", help="Run the supervisor in the foreground")
    p_start.add_argument(
        "--interval", type=float, default=None,
        help="Override the reconciliation interval in seconds",
    )
    p_start.add_argument(
        "--replace", action="store_true",
        help="Ask a running supervisor to exit (SIGHUP) and take over",
    )
    p_start.set_defaults(func=_lazy_start)

    # ── Stop ──────────────────────────────────────────────
    p_stop = sub.add_parser("stop", help="Ask the running supervisor to exit")
    p_stop.add_argument("--timeout", type=float, default=10.0, help="Seconds to wait")
    p_stop.set_defaults(func=_lazy_stop)

    # ── Status ────────────────────────────────────────────
    p_status = sub.add_parser("status", help="Show PID-file state per task")
    p_status.set_defaults(func=_lazy_status)

    return parser


def _lazy_start(args: argparse.Namespace) -> None:
    from spawnkeeper.cli.commands.supervisor import cmd_start

    cmd_start(args)


def _lazy_stop(args: argparse.Namespace) -> None:
    from spawnkeeper.cli.commands.supervisor import cmd_stop

    cmd_stop(args)


def _lazy_status(args: argparse.Namespace) -> None:
    from spawnkeeper.cli.commands.supervisor import cmd_status

    cmd_status(args)


def cli_main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    from spawnkeeper.logging_config import setup_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.log_level is None:
        args.log_level = os.environ.get("SPAWNKEEPER_LOG_LEVEL")
    setup_logging(level=args.log_level or "INFO")

    if not getattr(args, "func", None):
        parser.print_help()
        sys.exit(2)
    args.func(args)
