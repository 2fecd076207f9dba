"""Logging helpers shared by the package."""

from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def mask_sensitive(value: str | None, keep_chars: int = 4) -> str:
    """Return the first *keep_chars* characters of *value* followed by ``****``.

    Short values are masked completely so that nothing secret is revealed.
    """
    if not value:
        return ""
    if len(value) <= keep_chars * 2:
        return "****"
    return f"{value[:keep_chars]}****"


def configure_logging(level: str | int = "INFO", *, stream=None) -> logging.Logger:
    """Attach a single stream handler to the ``image-gallery`` logger tree."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("image-gallery")
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    # requests/urllib3 log full URLs at DEBUG, including authorization codes
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logger
