"""Logging setup for scripts embedding the library."""

import logging
from typing import Optional, Union

from .settings import get_settings


def configure_logging(level: Optional[Union[int, str]] = None) -> None:
    """
    Configure root logging.

    The library itself only creates module loggers; applications and scripts
    call this once at startup.

    Args:
        level: Logging level name or number. Defaults to ``Settings.log_level``.
    """
    if level is None:
        level = get_settings().log_level
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("pii_compliance").setLevel(level)
