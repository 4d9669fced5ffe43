"""Catalog CLI command."""

from __future__ import annotations

import argparse
import json

from rich.console import Console
from rich.table import Table

from ...providers.catalog import build_catalog
from ..base import load_config


def cmd_catalog(args: argparse.Namespace) -> int:
    """List every registered trigger and action, optionally for one provider."""
    catalog = build_catalog(load_config(args))
    provider = args.provider

    triggers = catalog.triggers.get_all_metadata(provider)
    actions = catalog.actions.get_all_metadata(provider)
    if provider and not triggers and not actions:
        print(f"Unknown provider: {provider}")
        return 1

    if args.json:
        print(
            json.dumps(
                {
                    "triggers": [d.to_dict() for d in triggers],
                    "actions": [d.to_dict() for d in actions],
                },
                indent=2,
            )
        )
        return 0

    console = Console()

    trigger_table = Table(title="Triggers")
    trigger_table.add_column("Key", style="cyan")
    trigger_table.add_column("Name")
    trigger_table.add_column("Type", style="magenta")
    trigger_table.add_column("Credentials", justify="center")
    trigger_table.add_column("Description", style="dim")
    for descriptor in triggers:
        trigger_table.add_row(
            descriptor.key,
            descriptor.name,
            descriptor.trigger_type or "-",
            "✓" if descriptor.requires_credentials else "",
            descriptor.description,
        )

    action_table = Table(title="Actions")
    action_table.add_column("Key", style="cyan")
    action_table.add_column("Name")
    action_table.add_column("Credentials", justify="center")
    action_table.add_column("Description", style="dim")
    for descriptor in actions:
        action_table.add_row(
            descriptor.key,
            descriptor.name,
            "✓" if descriptor.requires_credentials else "",
            descriptor.description,
        )

    console.print(trigger_table)
    console.print(action_table)
    return 0
