"""Workflow and execution inspection commands."""

from __future__ import annotations

import argparse

from rich.console import Console
from rich.table import Table

from ..base import load_config, logger, open_store


def cmd_workflows(args: argparse.Namespace) -> int:
    """Handle workflow management commands."""
    if not args.workflows_command:
        print("Usage: areaflow workflows <subcommand>")
        print("Subcommands: list")
        return 1

    handlers = {
        "list": _cmd_workflows_list,
    }

    handler = handlers.get(args.workflows_command)
    if handler:
        return handler(args)

    print(f"Unknown workflows subcommand: {args.workflows_command}")
    return 1


def _cmd_workflows_list(args: argparse.Namespace) -> int:
    try:
        db, store = open_store(load_config(args))
        try:
            workflows = store.list_workflows(args.owner)
        finally:
            db.dispose()
    except Exception as e:
        logger.error("Error listing workflows: %s", e, exc_info=True)
        print(f"Error: {e}")
        return 1

    console = Console()
    if not workflows:
        console.print(f"[yellow]No workflows for owner {args.owner}.[/]")
        return 0

    table = Table(title=f"Workflows ({args.owner})")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Trigger", style="magenta")
    table.add_column("Action", style="magenta")
    table.add_column("Active", justify="center")
    table.add_column("Last run", style="dim")
    for workflow in workflows:
        table.add_row(
            str(workflow.id),
            workflow.name,
            workflow.trigger_key,
            workflow.action_key,
            "[green]✓[/]" if workflow.is_active else "[dim]-[/]",
            workflow.last_run_at.isoformat() if workflow.last_run_at else "-",
        )
    console.print(table)
    return 0


def cmd_executions(args: argparse.Namespace) -> int:
    """Show the execution history of one workflow."""
    try:
        db, store = open_store(load_config(args))
        try:
            workflow = store.get_workflow(args.workflow)
            if workflow is None or workflow.owner_id != args.owner:
                print(f"Workflow {args.workflow} not found")
                return 1
            executions = store.list_executions(workflow.id, limit=args.limit)
        finally:
            db.dispose()
    except Exception as e:
        logger.error("Error listing executions: %s", e, exc_info=True)
        print(f"Error: {e}")
        return 1

    console = Console()
    if not executions:
        console.print(f"[yellow]No executions for workflow {args.workflow}.[/]")
        return 0

    styles = {"completed": "green", "failed": "red", "running": "yellow"}
    table = Table(title=f"Executions of workflow {args.workflow}")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Run")
    table.add_column("Status")
    table.add_column("Started", style="dim")
    table.add_column("Completed", style="dim")
    table.add_column("Error", style="red")
    for execution in executions:
        style = styles.get(execution.status, "white")
        table.add_row(
            str(execution.id),
            execution.durable_run_id,
            f"[{style}]{execution.status}[/]",
            execution.started_at.isoformat() if execution.started_at else "-",
            execution.completed_at.isoformat() if execution.completed_at else "-",
            execution.error or "",
        )
    console.print(table)
    return 0
