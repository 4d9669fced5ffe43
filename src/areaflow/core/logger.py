"""Logging for the automation engine.

Console output goes through Rich; an optional rotating log file receives the
same records in plain text. Every engine logger lives under the ``areaflow``
namespace, so the polling loops, dispatcher and provider clients can be tuned
with standard ``logging`` configuration.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .config import LoggingConfig

NAMESPACE = "areaflow"

# Dependencies that log every request or job run at INFO
LIBRARY_LOGGERS = ("httpx", "httpcore", "apscheduler", "sqlalchemy.engine")

_loggers: dict[str, logging.Logger] = {}
_current_level: int = logging.INFO

console = Console()


def _close_root_handlers(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        with suppress(Exception):
            handler.flush()
        with suppress(Exception):
            handler.close()
    root.handlers.clear()


def _rotating_file_handler(config: LoggingConfig, level: int) -> RotatingFileHandler:
    path = Path(config.log_file or "")
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
        delay=True,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(config.format))
    return handler


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Install the console (and optional file) handlers on the root logger.

    Calling it again replaces the previous handlers, so the CLI can switch
    to debug output after the config file is loaded.

    Args:
        config: LoggingConfig instance. If None, uses defaults.
    """
    global _current_level

    config = config or LoggingConfig()
    level = getattr(logging, config.level)

    root = logging.getLogger()
    _close_root_handlers(root)
    root.setLevel(level)

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=level <= logging.DEBUG,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    root.addHandler(console_handler)
    if config.log_file:
        root.addHandler(_rotating_file_handler(config, level))

    # never chattier than the engine itself
    library_level = max(getattr(logging, config.library_level), level)
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    _current_level = level
    logging.getLogger(NAMESPACE).setLevel(level)
    for named in _loggers.values():
        named.setLevel(level)

    logger = get_logger("logging")
    logger.debug("Logging configured: level=%s", config.level)
    if config.log_file:
        logger.info("Writing logs to %s", config.log_file)


def get_logger(name: str) -> logging.Logger:
    """Return the cached ``areaflow.<name>`` logger, e.g. ``engine.polling``."""
    if name not in _loggers:
        logger = logging.getLogger(f"{NAMESPACE}.{name}")
        logger.setLevel(_current_level)
        _loggers[name] = logger
    return _loggers[name]
