"""Application-level logging utilities."""

from __future__ import annotations

import logging
import os
import sys


def _resolve_level() -> int:
    if os.getenv("DEBUG", "false").lower() == "true":
        return logging.DEBUG
    name = os.getenv("PHARMA_ANALYST_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str = "pharma_analyst", level: int | None = None) -> logging.Logger:
    """Return a configured logger instance."""

    if level is None:
        level = _resolve_level()

    logger = logging.getLogger(name)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


LOGGER: logging.Logger = setup_logger()


def get_logger(suffix: str) -> logging.Logger:
    """Child logger sharing the package handler."""

    return LOGGER.getChild(suffix)


__all__ = ["LOGGER", "get_logger", "setup_logger"]
