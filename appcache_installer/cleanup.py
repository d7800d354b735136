from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from .errors import CleanupError
from .lib.fsops import is_within, remove_path
from .logging_utils import detach_file_logging

logger = logging.getLogger(__name__)


def archive_log_name(app_name: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"{app_name}-{stamp}.log"


def _report(err: CleanupError) -> None:
    logger.warning("Cleanup: %s", err)


def _install_dir(installer: Path, local_root: Path) -> Path:
    """Top-level app directory under local_root that holds the installer."""
    d = installer.parent
    root = Path(os.path.abspath(local_root))
    while is_within(d.parent, root) and Path(os.path.abspath(d.parent)) != root:
        d = d.parent
    return d


def cleanup(
    local_installer_path: Optional[str | Path],
    temp_local_archive: Optional[str | Path],
    local_cache_root: str | Path,
    log_path: Optional[str | Path],
    *,
    app_name: str,
    permanent_log_dir: str | Path,
    network_root: Optional[str | Path] = None,
    attempts: int = 3,
    delay_s: float = 1.0,
    now: Optional[datetime] = None,
) -> Optional[Path]:
    """Remove local transient artifacts and archive the run log.

    Best effort: every failure is logged and swallowed so cleanup never
    changes the outcome of a run. Nothing under network_root is touched.
    Returns the archived log path, if the log was archived.
    """

    def _delete(path: Path, what: str) -> None:
        if network_root and is_within(path, network_root):
            _report(CleanupError(f"refusing to delete {what} inside the network cache: {path}"))
            return
        try:
            remove_path(path, attempts=attempts, delay_s=delay_s)
        except OSError as e:
            _report(CleanupError(f"could not delete {what} {path}: {e}"))

    if local_installer_path:
        _delete(_install_dir(Path(local_installer_path), Path(local_cache_root)), "installer directory")

    if temp_local_archive:
        _delete(Path(temp_local_archive), "temporary archive")

    root = Path(local_cache_root)
    try:
        if root.is_dir() and not any(root.iterdir()):
            _delete(root, "local cache root")
    except OSError as e:
        _report(CleanupError(f"could not inspect {root}: {e}"))

    if not log_path:
        return None
    return _archive_log(Path(log_path), Path(permanent_log_dir), app_name, now)


def _archive_log(log: Path, permanent_dir: Path, app_name: str, now: Optional[datetime]) -> Optional[Path]:
    logger.info("Archiving run log %s to %s", log, permanent_dir)
    # Close our handle first so the copy is complete and the original can be removed.
    detach_file_logging()

    if not log.is_file():
        _report(CleanupError(f"run log {log} does not exist"))
        return None

    target = permanent_dir / archive_log_name(app_name, now)
    try:
        permanent_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(log, target)
    except OSError as e:
        _report(CleanupError(f"could not archive log {log}: {e}"))
        return None

    try:
        log.unlink()
    except OSError as e:
        _report(CleanupError(f"could not remove log {log}: {e}"))
    logger.info("Run log archived to %s", target)
    return target
