"""
reaper_video_fx.logging - Centralized logging configuration.

Verbose mode shows every bridge exchange and FFmpeg invocation, tagged
with the module that logged it.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("reaper_video_fx")

DEFAULT_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = "%(levelname)s [%(name)s] %(message)s"


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the reaper_video_fx package.

    Args:
        verbose: If True, enable DEBUG level logging; otherwise WARNING level
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format=VERBOSE_FORMAT if verbose else DEFAULT_FORMAT,
    )
    logger.setLevel(level)
