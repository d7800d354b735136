from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def is_share_reachable(root: Optional[str]) -> bool:
    """Best-effort check that the network cache root is a reachable directory."""

    if not root:
        return False
    try:
        p = Path(root)
        return p.is_dir() and os.access(p, os.R_OK)
    except OSError as e:
        logger.warning("Network root %s not reachable: %s", root, e)
        return False
