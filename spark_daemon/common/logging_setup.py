"""
Logging setup for Spark

Configures handlers on the "spark" logger tree only. Modules obtain their own
named loggers (spark.parser.command_detector, spark.execution.executor, ...).
"""

import logging
from pathlib import Path
from typing import Optional

from .config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
ROOT_LOGGER = "spark"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _level(name: str) -> int:
    return _LEVELS.get((name or "info").lower(), logging.INFO)


def configure_logging(config: LoggingConfig, vault_path: Optional[Path] = None) -> logging.Logger:
    """
    Install stream/file handlers on the spark logger.

    Safe to call again on config reload: handlers installed by a previous call
    are replaced rather than duplicated. A relative log file is resolved
    against the vault.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_level(config.level))

    for handler in list(logger.handlers):
        if getattr(handler, "_spark_handler", False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    if config.console:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        stream._spark_handler = True
        logger.addHandler(stream)

    if config.file:
        log_path = Path(config.file)
        if not log_path.is_absolute() and vault_path is not None:
            log_path = Path(vault_path) / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler._spark_handler = True
        logger.addHandler(file_handler)

    return logger
