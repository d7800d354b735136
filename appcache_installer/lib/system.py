from __future__ import annotations

import ctypes
import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def is_admin() -> bool:
    if os.name == "nt":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def free_space_mb(path: str | Path) -> int:
    """Free space on the volume holding path (or its nearest existing parent)."""

    p = Path(path).absolute()
    while not p.exists() and p.parent != p:
        p = p.parent
    return shutil.disk_usage(p).free // (1024 * 1024)
