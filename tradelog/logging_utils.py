"""Logging setup for the command-line and web entry points."""

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_HANDLER_NAME = "tradelog-root-handler"


def _resolve_level(level: Optional[Union[str, int]]) -> int:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return int(level)


def setup_logging(level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Attach one stream handler to the root logger (idempotent)."""
    root = logging.getLogger()
    resolved = _resolve_level(level)

    if not any(getattr(h, "name", "") == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.name = _HANDLER_NAME
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)

    root.setLevel(resolved)
    return root
