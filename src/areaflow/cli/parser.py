"""CLI argument parser and banner display."""

from __future__ import annotations

import argparse

from rich.console import Console
from rich.panel import Panel

from .. import __version__
from ..core import EngineConfig
from ..store.database import display_url
from .base import DEFAULT_CONFIG_PATH


def print_banner(config: EngineConfig, args: argparse.Namespace) -> None:
    """Print a startup banner with configuration info."""
    console = Console()

    providers = config.polling.providers
    polling = "disabled" if not config.polling.enabled else ", ".join(providers or ["all"])
    gmail_push = config.gmail_watch.pubsub_topic or "disabled"

    info = f"""
[bold]areaflow[/bold] [green]v{__version__}[/]
If-this-then-that automation engine.

[dim]----------------------------------------------------[/]
[bold]Config:[/bold]     [yellow]{args.config}[/]
[bold]Database:[/bold]   [yellow]{display_url(config.database.url)}[/]
[bold]Polling:[/bold]    [yellow]{polling}[/]
[bold]Gmail push:[/bold] [yellow]{gmail_push}[/]
[bold]Timezone:[/bold]   [yellow]{config.timezone or "UTC"}[/]
"""

    console.print(
        Panel(info, title="[bold white]Startup[/]", border_style="blue", expand=False)
    )


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Returns:
        ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="areaflow",
        description="areaflow - run trigger/action workflows across third-party services",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate default config
  areaflow init -o areaflow.yaml

  # Create the database tables
  areaflow init-db -c areaflow.yaml

  # Start the engine
  areaflow run -c areaflow.yaml --debug

  # List every Spotify trigger and action
  areaflow catalog --provider spotify
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s v{__version__}",
        help="Show program's version number and exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Start the automation engine")
    _add_config_argument(run_parser)
    run_parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug/verbose logging mode",
    )

    init_parser = subparsers.add_parser("init", help="Generate default configuration")
    init_parser.add_argument(
        "-o",
        "--output",
        default=DEFAULT_CONFIG_PATH,
        help=f"Output config file path (default: {DEFAULT_CONFIG_PATH})",
    )
    init_parser.add_argument(
        "-f", "--force", action="store_true", help="Overwrite an existing file"
    )

    init_db_parser = subparsers.add_parser("init-db", help="Create the database tables")
    _add_config_argument(init_db_parser)

    catalog_parser = subparsers.add_parser("catalog", help="List triggers and actions")
    _add_config_argument(catalog_parser)
    catalog_parser.add_argument("--provider", help="Only show this provider")
    catalog_parser.add_argument(
        "--json", action="store_true", help="Print descriptors as JSON"
    )

    workflows_parser = subparsers.add_parser("workflows", help="Workflow inspection")
    workflows_subparsers = workflows_parser.add_subparsers(
        dest="workflows_command", help="Workflow subcommands"
    )
    workflows_list_parser = workflows_subparsers.add_parser("list", help="List workflows")
    _add_config_argument(workflows_list_parser)
    workflows_list_parser.add_argument("--owner", required=True, help="Owner id")

    executions_parser = subparsers.add_parser("executions", help="Execution history")
    _add_config_argument(executions_parser)
    executions_parser.add_argument("--workflow", type=int, required=True, help="Workflow id")
    executions_parser.add_argument("--owner", required=True, help="Owner id")
    executions_parser.add_argument(
        "-n", "--limit", type=int, default=50, help="Maximum rows (default: 50)"
    )

    return parser
