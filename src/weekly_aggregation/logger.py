"""
Loguru sinks for the aggregation run: a colored stderr sink and an optional
rotating file sink, both driven by the ``logging`` settings section.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

from weekly_aggregation.config import get_config


def setup_logger(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    rotation: Optional[str] = None,
    retention: Optional[str] = None,
    format: Optional[str] = None,
    file_enabled: Optional[bool] = None,
) -> None:
    """Replace loguru's default sink with the configured ones.

    Arguments left as None take their value from ``LoggingConfig``. Passing
    ``log_file`` turns the file sink on unless ``file_enabled`` is False.
    """
    log_config = get_config().logging

    if file_enabled is None:
        file_enabled = log_config.file_enabled or log_file is not None

    level = level or log_config.level
    format = format or log_config.format

    _logger.remove()

    if log_config.console_enabled:
        _logger.add(sys.stderr, format=format, level=level, colorize=True, backtrace=True)

    if file_enabled:
        path = Path(log_file or log_config.file_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        _logger.add(
            str(path),
            format=format,
            level=level,
            rotation=rotation or log_config.rotation,
            retention=retention or log_config.retention,
            compression="zip",
            encoding="utf-8",
            # adapters log from worker threads in parallel mode
            enqueue=True,
            backtrace=True,
        )


def get_logger(name: Optional[str] = None):
    """Logger bound to ``name``, normally the calling module's ``__name__``."""
    if name:
        return _logger.bind(name=name)
    return _logger


logger = _logger

__all__ = ["setup_logger", "get_logger", "logger"]
