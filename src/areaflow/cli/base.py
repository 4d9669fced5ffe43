"""Base utilities and shared imports for CLI module."""

from __future__ import annotations

import argparse
from pathlib import Path

from ..app import AutomationApp
from ..core import EngineConfig, get_logger
from ..store import AutomationStore, DatabaseManager, init_database

logger = get_logger("cli")

DEFAULT_CONFIG_PATH = "areaflow.yaml"


def load_config(args: argparse.Namespace, required: bool = False) -> EngineConfig | None:
    """Load the YAML config named by ``--config``.

    Falls back to defaults (plus environment) when the file is missing, unless
    ``required`` is set, in which case an error is printed and None returned.
    """
    config_path = Path(args.config)
    if config_path.exists():
        return EngineConfig.from_yaml(config_path)
    if required:
        print(f"Error: Configuration file not found: {config_path}")
        print("Run 'areaflow init' to create a default configuration.")
        return None
    return EngineConfig()


def open_store(config: EngineConfig) -> tuple[DatabaseManager, AutomationStore]:
    """Open the configured database without starting the engine."""
    db = init_database(config.database.url, echo=config.database.echo)
    return db, AutomationStore(db)


__all__ = [
    "AutomationApp",
    "DEFAULT_CONFIG_PATH",
    "EngineConfig",
    "load_config",
    "logger",
    "open_store",
]
