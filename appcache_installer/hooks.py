from __future__ import annotations

import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from .errors import HookScriptError
from .lib.command import run_cmd

logger = logging.getLogger(__name__)


def hook_argv(script: str | Path) -> List[str]:
    p = Path(script)
    suffix = p.suffix.lower()
    if suffix == ".ps1":
        return ["powershell.exe", "-NoProfile", "-ExecutionPolicy", "Bypass", "-File", str(p)]
    if suffix == ".py":
        return [sys.executable, str(p)]
    if suffix in {".cmd", ".bat"}:
        return ["cmd.exe", "/c", str(p)]
    return [str(p)]


def run_hook_script(
    script: Optional[str],
    label: str,
    *,
    timeout_s: Optional[float] = None,
    dry_run: bool = False,
) -> None:
    """Run a pre/post install script to completion; any failure is fatal."""

    if not script:
        return
    logger.info("Running %s script %s", label, script)
    try:
        r = run_cmd(hook_argv(script), check=False, timeout_s=timeout_s, dry_run=dry_run)
    except (OSError, subprocess.SubprocessError) as e:
        raise HookScriptError(f"{label} script {script} could not run: {e}") from e
    if r.returncode != 0:
        raise HookScriptError(f"{label} script {script} exited with code {r.returncode}")
    logger.info("%s script completed", label)
