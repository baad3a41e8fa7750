"""Helpers shared by CLI commands: logging setup and action wiring."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from reporg.actions import ReporgActions
from reporg.config import ConfigManager, ReporgConfig
from reporg.config.models import LoggingSettings
from reporg.state import RecordStore

LOGGER_NAME = "reporg"
_HANDLER_MARKER = "_reporg_handler"


def configure_logging(settings: LoggingSettings, *, console: Console | None = None) -> logging.Logger:
    """Attach a rotating file handler and a rich console handler to the reporg logger.

    Calling this again replaces the handlers installed by a previous call.

    Args:
        settings: Logging section of the loaded configuration.
        console: Console the rich handler writes to; stderr when omitted.

    Returns:
        logging.Logger: The configured ``reporg`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.getLevelName(settings.level)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    log_path = Path(settings.file).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=settings.max_size_mb * 1024 * 1024,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )

    for handler in (file_handler, console_handler):
        handler.setLevel(level)
        setattr(handler, _HANDLER_MARKER, True)
        logger.addHandler(handler)
    return logger


def load_config(manager: ConfigManager | None = None) -> ReporgConfig:
    """Load configuration, creating the default file on first use."""
    manager = manager or ConfigManager()
    manager.ensure_exists()
    return manager.load()


def build_actions(config: ReporgConfig) -> ReporgActions:
    """Open the configured record store and wire the action surface around it."""
    store = RecordStore(Path(config.store.path))
    return ReporgActions(store, config=config)


__all__ = ["configure_logging", "load_config", "build_actions", "LOGGER_NAME"]
