"""Logging configuration."""

import logging
import os
import sys
from typing import Literal

from pydantic import BaseModel


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    stream: Literal["stdout", "stderr"] = "stdout"


def setup_logging(config: LogConfig | None = None) -> None:
    """Set up logging configuration for the application."""
    if config is None:
        config = LogConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    level = getattr(logging, config.level.upper())

    # Module loggers carry their own levels, so filter at the handler too
    handler = logging.StreamHandler(sys.stdout if config.stream == "stdout" else sys.stderr)
    handler.setLevel(level)

    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt=config.date_format,
        handlers=[handler],
        force=True,
    )

    # Provider SDKs log every request at INFO
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Explicit level, overriding LOG_LEVEL

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    log_level = level if level else os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(log_level.upper())

    return logger
