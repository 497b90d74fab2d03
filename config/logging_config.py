"""Logging configuration module.

This module provides centralized logging configuration so the engine, the
stores and the CLI share one format and set of handlers.
"""

import logging
import os
import re
from inspect import getmodulename

from config.multitimer_config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(module_name)s] %(message)s"


class CustomLogRecord(logging.LogRecord):
    """Log record carrying the name of the module that emitted it."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.module_name = getmodulename(self.pathname)


def _prepare_log_file(log_file: str, max_size: int) -> str:
    # Strip leading and trailing whitespace and collapse repeated slashes
    log_file = re.sub(r"/+", "/", log_file.strip())

    if not os.path.isabs(log_file):
        log_file = os.path.join(os.getcwd(), log_file)

    log_dir = os.path.dirname(log_file)
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    if not os.path.exists(log_file):
        open(log_file, "w").close()

    # Keep only the newest max_size bytes of an oversized log
    if os.path.getsize(log_file) > max_size:
        with open(log_file, "r+") as f:
            data = f.read()
            f.seek(0)
            f.write(data[len(data) - max_size :])
            f.truncate()

    return log_file


def configure_logging(logging_config: LoggingConfig):
    """Configure logging based on the provided logging configuration.

    Args:
        logging_config: Configuration object containing logging settings.
    """
    log_level = logging.getLevelName(logging_config.log_level.upper())
    log_file_max_size = logging_config.log_file_max_size * 1024 * 1024

    logging.setLogRecordFactory(CustomLogRecord)
    handlers = []

    if logging_config.log_file:
        log_file = _prepare_log_file(logging_config.log_file, log_file_max_size)
        handlers.append(logging.FileHandler(log_file))

    if not logging_config.disable_console_logging:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    for logger_name, level in (logging_config.loggers or {}).items():
        logging.getLogger(logger_name).setLevel(level.upper())
