"""CLI command handlers package."""

from .basic import cmd_init, cmd_init_db, cmd_run
from .catalog import cmd_catalog
from .workflows import cmd_executions, cmd_workflows

__all__ = [
    "cmd_catalog",
    "cmd_executions",
    "cmd_init",
    "cmd_init_db",
    "cmd_run",
    "cmd_workflows",
]
