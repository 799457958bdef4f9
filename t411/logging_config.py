"""Logging setup for applications using the client."""
import logging
import sys
from typing import Optional, Union

from t411.config.settings import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[Union[int, str]] = None) -> None:
    """
    Configure root logging to stdout.

    Args:
        level: Logging level. If None, uses settings.log_level
    """
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    logging.basicConfig(
        format=LOG_FORMAT,
        level=level,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))
