"""Rotating logger setup for the upgrade console."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional, Union

LevelType = Union[int, str]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
# ISO 8601 timestamps
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def parse_level(level: LevelType) -> int:
    """Turn "debug"/"WARNING"/20 into a logging level number.

    Raises:
        ValueError: If a level name is not known to the logging module
    """
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def setup_logger(
    name: str = "pendant_upgrader",
    log_file: str = "./logs/pendant-upgrader.log",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 3,
    level: LevelType = logging.INFO,
    component_levels: Optional[Dict[str, LevelType]] = None,
) -> logging.Logger:
    """Setup rotating file logger for the upgrader and its components.

    Component loggers (pendant_upgrader.transfer_client, ...reconnect, ...)
    propagate into the logger configured here. Handlers pass everything
    through, so a component raised to DEBUG in component_levels still reaches
    the file while the root stays at INFO.

    Args:
        name: Logger name
        log_file: Path to log file (created if doesn't exist)
        max_bytes: Max size before rotation
        backup_count: Number of rotated files to keep
        level: Level of the root upgrader logger, as number or name
        component_levels: Per-component overrides keyed by the suffix
            after name, e.g. {"reconnect": "WARNING"}

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(parse_level(level))

    # Overrides apply on every call, handlers only once
    for component, component_level in (component_levels or {}).items():
        logging.getLogger(f"{name}.{component}").setLevel(parse_level(component_level))

    if logger.handlers:
        return logger

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in (file_handler, console_handler):
        handler.setLevel(logging.NOTSET)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
