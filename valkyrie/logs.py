"""Logging setup for the valkyrie package."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from valkyrie.config import Settings
from valkyrie.utils.console import ColorfulFormatter

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(process)d] %(message)s"

NOISY_LOGGERS = [
    "asyncssh",
    "discord",
    "discord.gateway",
    "discord.http",
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
]


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure console (and optionally file) logging.

    Safe to call more than once; handlers are only added the first time.

    Args:
        settings: Log levels, console and file switches, colors, and rotation

    Returns:
        The configured ``valkyrie`` logger
    """
    use_colors = settings.log_colors and sys.stderr.isatty()
    base_level = _level(settings.log_level, logging.DEBUG)
    console_level = _level(settings.log_console_level, base_level)
    file_level = _level(settings.log_file_level, base_level)

    active: list[int] = []
    if settings.log_console_enabled:
        active.append(console_level)
    if settings.log_file_enabled:
        active.append(file_level)

    valkyrie_logger = logging.getLogger("valkyrie")
    # The logger passes the most verbose level any handler wants.
    valkyrie_logger.setLevel(min(active, default=base_level))

    if not valkyrie_logger.handlers:
        if settings.log_console_enabled:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(console_level)
            handler.setFormatter(ColorfulFormatter(use_colors=use_colors))
            valkyrie_logger.addHandler(handler)

        if settings.log_file_enabled:
            directory = Path(settings.log_directory)
            directory.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                directory / settings.log_file_name,
                maxBytes=settings.log_file_max_bytes,
                backupCount=settings.log_file_backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(file_level)
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            valkyrie_logger.addHandler(file_handler)

        if not valkyrie_logger.handlers:
            valkyrie_logger.addHandler(logging.NullHandler())

        valkyrie_logger.propagate = False

    for noisy_logger in NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    return valkyrie_logger


def _level(name: str | None, default: int) -> int:
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default
