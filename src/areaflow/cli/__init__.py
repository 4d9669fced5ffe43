"""Command-line interface for the areaflow engine.

``areaflow run`` starts the engine in the foreground; the remaining commands
inspect the capability catalog and the store without starting any loop.
"""

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence

from .commands import (
    cmd_catalog,
    cmd_executions,
    cmd_init,
    cmd_init_db,
    cmd_run,
    cmd_workflows,
)
from .parser import build_parser, print_banner

CommandHandler = Callable[[argparse.Namespace], int]

COMMANDS: dict[str, CommandHandler] = {
    "run": cmd_run,
    "init": cmd_init,
    "init-db": cmd_init_db,
    "catalog": cmd_catalog,
    "workflows": cmd_workflows,
    "executions": cmd_executions,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Parse ``argv`` and run the selected command.

    Without a command the help text is printed and ``SystemExit(0)`` raised,
    like argparse does for ``--help``.

    Returns:
        Process exit code of the command
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        raise SystemExit(0)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args)


__all__ = [
    "COMMANDS",
    "build_parser",
    "cmd_catalog",
    "cmd_executions",
    "cmd_init",
    "cmd_init_db",
    "cmd_run",
    "cmd_workflows",
    "main",
    "print_banner",
]
