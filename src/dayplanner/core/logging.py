"""
Logging setup for the ``dayplanner`` logger.

Level, format and the optional log directory come from ``settings.logging``
(the ``logging:`` section of config.yml, or ``DAYPLANNER_LOG_LEVEL``,
``DAYPLANNER_LOG_FORMAT`` and ``DAYPLANNER_LOGS_PATH``). Without a log
directory only the console handler is attached.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from dayplanner.core import config

LOGGER_NAME = "dayplanner"
LOG_FILE_NAME = "dayplanner.log"

# Singleton logger instance
_logger: Optional[logging.Logger] = None


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(logging_config: Optional[config.LoggingConfig] = None) -> logging.Logger:
    """
    (Re)build the ``dayplanner`` logger's handlers.

    Args:
        logging_config: Settings to apply; defaults to ``settings.logging``

    Returns:
        The configured logger
    """
    global _logger
    logging_config = logging_config or config.settings.logging

    _logger = logging.getLogger(LOGGER_NAME)
    _logger.setLevel(_resolve_level(logging_config.level))
    _logger.propagate = False

    for handler in list(_logger.handlers):
        _logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(logging_config.format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    _logger.addHandler(console_handler)

    if logging_config.logs_path:
        log_path = Path(logging_config.logs_path) / LOG_FILE_NAME
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    return _logger


def get_logger() -> logging.Logger:
    """Get the singleton logger, configuring it on first use."""
    if _logger is None:
        return configure_logging()
    return _logger


# Export the singleton logger
logger = get_logger()
