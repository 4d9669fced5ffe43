"""Basic CLI commands: run, init, init-db."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from ...store import DatabaseManager
from ..base import AutomationApp, EngineConfig, load_config, logger
from ..parser import print_banner


def cmd_run(args: argparse.Namespace) -> int:
    """Handle run command.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    try:
        config = load_config(args, required=True)
        if config is None:
            return 1
        if args.debug:
            config.logging.level = "DEBUG"
        print_banner(config, args)

        app = AutomationApp(config)
        asyncio.run(app.run_forever())
        return 0
    except KeyboardInterrupt:
        logger.info("Engine interrupted by user")
        return 0
    except Exception as e:
        logger.error("Error running engine: %s", e, exc_info=True)
        return 1


def cmd_init(args: argparse.Namespace) -> int:
    """Handle init command.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    output_path = Path(args.output)

    if output_path.exists() and not args.force:
        response = input(f"{output_path} already exists. Overwrite? (y/N): ")
        if response.lower() != "y":
            print("Cancelled.")
            return 0

    EngineConfig().to_yaml(output_path)

    print(f"✓ Configuration file created: {output_path}")
    print("\nNext steps:")
    print(f"1. Edit {output_path} and set the database URL and OAuth app credentials")
    print(f"2. Create the tables: areaflow init-db --config {output_path}")
    print(f"3. Start the engine: areaflow run --config {output_path}")

    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    """Handle init-db command."""
    try:
        config = load_config(args)
        db = DatabaseManager(config.database.url, echo=config.database.echo)
        tables = db.create_tables()
        db.dispose()
    except Exception as e:
        logger.error("Error creating tables: %s", e, exc_info=True)
        print(f"Error: {e}")
        return 1

    print(f"✓ Database ready: {db.safe_url}")
    print(f"  Tables: {', '.join(tables)}")
    return 0
