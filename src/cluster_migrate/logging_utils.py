"""Shared logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# Looks up sys.stderr on each write; a live stage region redirects it.
_CONSOLE = Console(width=120, stderr=True)
_LOGGER_CACHE: dict[str, logging.Logger] = {}
_FILE_HANDLER: Optional[logging.Handler] = None
_CONSOLE_LEVEL = logging.WARNING


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    if name in _LOGGER_CACHE:
        return _LOGGER_CACHE[name]

    handler = RichHandler(console=_CONSOLE, show_path=False, level=_CONSOLE_LEVEL)
    formatter = logging.Formatter("%(message)s")
    handler.setFormatter(formatter)

    logger = logging.getLogger(f"cluster_migrate.{name}")
    logger.setLevel(min(level, _CONSOLE_LEVEL))
    logger.addHandler(handler)
    if _FILE_HANDLER is not None:
        logger.addHandler(_FILE_HANDLER)
    logger.propagate = False

    _LOGGER_CACHE[name] = logger
    return logger


def set_global_log_level(level: int) -> None:
    """Set the level shown on the terminal; a log file keeps INFO and up."""

    global _CONSOLE_LEVEL
    _CONSOLE_LEVEL = level
    for logger in _LOGGER_CACHE.values():
        logger.setLevel(min(level, logging.INFO))
        for handler in logger.handlers:
            if isinstance(handler, RichHandler):
                handler.setLevel(level)


def set_log_file(path: Path | str | None) -> None:
    """Mirror every cached logger into ``path`` (``None`` detaches the file)."""

    global _FILE_HANDLER
    if _FILE_HANDLER is not None:
        for logger in _LOGGER_CACHE.values():
            logger.removeHandler(_FILE_HANDLER)
        _FILE_HANDLER.close()
        _FILE_HANDLER = None
    if path is None:
        return
    log_path = Path(path).expanduser()
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")
    )
    for logger in _LOGGER_CACHE.values():
        logger.addHandler(handler)
    _FILE_HANDLER = handler
