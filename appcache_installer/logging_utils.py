from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default

_FMT = logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging for one installation run.

    The run log is an append-only file of timestamped lines. It is archived to
    the permanent log directory by cleanup, so the file handler is tracked on
    the root logger and can be detached with detach_file_logging().

    Notes:
    - If the requested path is not writable we fall back to a file in the
      working directory and report the path actually used.

    Returns the actual file path being used.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_appcache_configured", False):
        if getattr(logger, "_appcache_file_handler", None) is not None:
            return getattr(logger, "_appcache_log_path", log_path)
        # A previous run archived its log; start a fresh one.
        reset_logging()

    chosen_path = log_path
    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    except OSError:
        fallback = str(Path.cwd() / "appcache-install.log")
        file_handler = logging.FileHandler(fallback, mode="a", encoding="utf-8")
        chosen_path = fallback
    file_handler.setFormatter(_FMT)
    logger.addHandler(file_handler)

    console: Optional[logging.Handler] = None
    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(_FMT)
        logger.addHandler(console)

    setattr(logger, "_appcache_configured", True)
    setattr(logger, "_appcache_log_path", chosen_path)
    setattr(logger, "_appcache_file_handler", file_handler)
    setattr(logger, "_appcache_console_handler", console)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path


def detach_file_logging() -> None:
    """Close the run log file handler; console logging keeps working."""

    logger = logging.getLogger()
    handler = getattr(logger, "_appcache_file_handler", None)
    if handler is None:
        return
    logger.removeHandler(handler)
    handler.close()
    setattr(logger, "_appcache_file_handler", None)


def reset_logging() -> None:
    """Drop every handler installed by configure_logging()."""

    logger = logging.getLogger()
    detach_file_logging()
    console = getattr(logger, "_appcache_console_handler", None)
    if console is not None:
        logger.removeHandler(console)
        console.close()
    for attr in (
        "_appcache_configured",
        "_appcache_log_path",
        "_appcache_file_handler",
        "_appcache_console_handler",
    ):
        if hasattr(logger, attr):
            delattr(logger, attr)
