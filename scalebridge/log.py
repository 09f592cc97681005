"""Logging helpers shared by the gateway components."""
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

_ROOT_NAME = "scalebridge"
_CONFIGURED = False


def _configure_root() -> logging.Logger:
    global _CONFIGURED
    logger = logging.getLogger(_ROOT_NAME)
    if _CONFIGURED or logger.handlers:
        _CONFIGURED = True
        return logger

    level_name = os.getenv("SCALEBRIDGE_LOG_LEVEL", "INFO").strip().upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    handler: Optional[logging.Handler] = None
    log_dir = os.getenv("SCALEBRIDGE_LOG_DIR")
    if log_dir:
        try:
            path = Path(log_dir)
            path.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path / "gateway.log")
        except OSError:
            handler = None

    if handler is None:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    _CONFIGURED = True
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``scalebridge.<name>``, configuring the parent logger on first use."""

    _configure_root()
    return logging.getLogger(f"{_ROOT_NAME}.{name}")


__all__ = ["get_logger"]
