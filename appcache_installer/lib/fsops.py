from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_fixed

logger = logging.getLogger(__name__)


def copy_tree(src: str | Path, dst: str | Path) -> None:
    """Replace dst with a recursive copy of src."""
    s = Path(src)
    d = Path(dst)
    if not s.is_dir():
        raise FileNotFoundError(str(src))

    if d.exists():
        shutil.rmtree(d)
    d.parent.mkdir(parents=True, exist_ok=True)
    for item in sorted(s.rglob("*")):
        rel = item.relative_to(s)
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, out)
    d.mkdir(parents=True, exist_ok=True)
    logger.info("Copied tree %s -> %s", s, d)


def move_file(src: str | Path, dst: str | Path) -> None:
    d = Path(dst)
    d.parent.mkdir(parents=True, exist_ok=True)
    if d.exists():
        d.unlink()
    shutil.move(str(src), str(d))
    logger.info("Moved %s -> %s", src, d)


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def remove_path(path: str | Path, *, attempts: int = 3, delay_s: float = 1.0) -> bool:
    """Delete a file or directory tree, retrying transient failures.

    Returns False when there was nothing to delete; raises the last OSError
    when every attempt fails.
    """

    p = Path(path)
    if not (p.exists() or p.is_symlink()):
        return False
    for attempt in Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_fixed(delay_s),
        retry=retry_if_exception_type(OSError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            _remove(p)
    logger.info("Removed %s", p)
    return True


def is_within(path: str | Path, root: str | Path) -> bool:
    try:
        Path(os.path.abspath(path)).relative_to(os.path.abspath(root))
        return True
    except ValueError:
        return False
