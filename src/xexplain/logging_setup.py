"""Idempotent stderr logging for the xexplain logger tree."""

from __future__ import annotations

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_CONFIGURED = False


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.environ.get("XEXPLAIN_LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        # getLevelName returns "Level X" for unknown names
        return resolved if isinstance(resolved, int) else logging.WARNING
    return level


def setup_logging(level: int | str | None = None) -> logging.Logger:
    """Attach a stderr handler to the ``xexplain`` logger once.

    ``level`` may be a logging constant or name; when omitted it comes from
    ``XEXPLAIN_LOG_LEVEL`` and defaults to WARNING so that rendered insights on
    stdout stay clean. Later calls only adjust the level.
    """
    global _CONFIGURED  # noqa: PLW0603
    logger = logging.getLogger("xexplain")
    logger.setLevel(_resolve_level(level))
    if _CONFIGURED:
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True
    return logger
