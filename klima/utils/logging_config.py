"""
Logging setup for the Klima map API.

``setup_logging()`` is called once when klima.main is imported. It configures
the root logger with a stdout handler and two rotating files under
``LOG_DIR``: the application log (INFO and up) and an errors-only log, which
is where wrapped data source failures end up.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from klima.config import settings

APP_LOG = "klima_api.log"
ERROR_LOG = "klima_api_errors.log"
MAX_LOG_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_BACKUPS = 5
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEVELOPMENT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
PRODUCTION_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Libraries whose INFO output drowns the application log
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "sqlalchemy.pool")


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger.

    Calling it again replaces the handlers instead of stacking them.

    Args:
        log_dir: directory for the rotating files, defaults to ``LOG_DIR``

    Returns:
        The root logger
    """
    directory = Path(log_dir or settings.LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        fmt=DEVELOPMENT_FORMAT if settings.DEBUG else PRODUCTION_FORMAT,
        datefmt=DATE_FORMAT,
    )

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    console.setFormatter(formatter)
    root.addHandler(console)
    root.addHandler(_rotating_handler(directory / APP_LOG, logging.INFO, formatter))
    root.addHandler(_rotating_handler(directory / ERROR_LOG, logging.ERROR, formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        f"Klima Map API logging initialized "
        f"(level={settings.LOG_LEVEL}, debug={settings.DEBUG}, dir={directory})"
    )
    return root


def get_logger(name: str) -> logging.Logger:
    """Module logger; handlers are attached to the root logger only."""
    return logging.getLogger(name)
