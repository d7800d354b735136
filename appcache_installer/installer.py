from __future__ import annotations

import enum
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .lib.command import run_cmd, split_args

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_REBOOT_REQUIRED = 3010


class InstallerKind(str, enum.Enum):
    MSI = "msi"
    EXE = "exe"


class OutcomeStatus(str, enum.Enum):
    SUCCESS = "success"
    REBOOT_REQUIRED = "reboot_required"
    FAILED = "failed"


@dataclass(frozen=True)
class RunOutcome:
    status: OutcomeStatus
    exit_code: Optional[int] = None
    reason: str = ""

    @classmethod
    def success(cls, exit_code: int = EXIT_SUCCESS) -> "RunOutcome":
        return cls(OutcomeStatus.SUCCESS, exit_code)

    @classmethod
    def reboot_required(cls) -> "RunOutcome":
        return cls(OutcomeStatus.REBOOT_REQUIRED, EXIT_REBOOT_REQUIRED, "Installer requested a reboot")

    @classmethod
    def failed(cls, reason: str, exit_code: Optional[int] = None) -> "RunOutcome":
        return cls(OutcomeStatus.FAILED, exit_code, reason)

    @property
    def process_exit_code(self) -> int:
        if self.status is OutcomeStatus.SUCCESS:
            return EXIT_SUCCESS
        if self.status is OutcomeStatus.REBOOT_REQUIRED:
            return EXIT_REBOOT_REQUIRED
        return EXIT_FAILURE


def installer_kind(path: str | Path) -> InstallerKind:
    return InstallerKind.MSI if Path(path).suffix.lower() == ".msi" else InstallerKind.EXE


def classify_exit_code(kind: InstallerKind, code: int) -> RunOutcome:
    """Map an installer exit code to an outcome.

    3010 only means "reboot required" for Windows Installer packages; an exe
    returning it is treated like any other failure code.
    """

    if code == EXIT_SUCCESS:
        return RunOutcome.success()
    if kind is InstallerKind.MSI and code == EXIT_REBOOT_REQUIRED:
        return RunOutcome.reboot_required()
    return RunOutcome.failed(f"{kind.value} installer exited with code {code}", exit_code=code)


def build_install_argv(
    installer_path: str | Path,
    kind: InstallerKind,
    msi_args: str,
    exe_args: str,
    *,
    msiexec: str = "msiexec",
) -> List[str]:
    if kind is InstallerKind.MSI:
        return [msiexec, "/i", str(installer_path), *split_args(msi_args)]
    return [str(installer_path), *split_args(exe_args)]


def trigger_reboot(reboot_command: Sequence[str], *, dry_run: bool = False) -> None:
    logger.warning("Reboot requested; issuing %s", " ".join(reboot_command))
    r = run_cmd(reboot_command, check=False, dry_run=dry_run)
    if r.returncode != 0:
        logger.error("Reboot command failed (%s): %s", r.returncode, r.stderr.strip())


def run_installer(
    installer_path: str | Path,
    kind: InstallerKind,
    msi_args: str,
    exe_args: str,
    allow_reboot: bool,
    *,
    timeout_s: Optional[float] = None,
    msiexec: str = "msiexec",
    reboot_command: Sequence[str] = (),
    dry_run: bool = False,
) -> RunOutcome:
    """Run the installer, wait for it and classify its exit code.

    timeout_s of None waits indefinitely; otherwise the process is killed on
    expiry and the run fails.
    """

    argv = build_install_argv(installer_path, kind, msi_args, exe_args, msiexec=msiexec)
    logger.info("Running %s installer %s (timeout=%s)", kind.value, installer_path, timeout_s or "none")

    try:
        r = run_cmd(argv, check=False, timeout_s=timeout_s, dry_run=dry_run)
    except subprocess.TimeoutExpired:
        logger.error("%s installer timed out after %ss and was killed", kind.value, timeout_s)
        return RunOutcome.failed(f"{kind.value} installer timed out after {timeout_s}s")
    except OSError as e:
        logger.error("Could not launch %s installer: %s", kind.value, e)
        return RunOutcome.failed(f"{kind.value} installer could not be launched: {e}")

    outcome = classify_exit_code(kind, r.returncode)
    logger.info("Installer exit code %s -> %s", r.returncode, outcome.status.value)

    if outcome.status is OutcomeStatus.REBOOT_REQUIRED:
        if allow_reboot and reboot_command:
            trigger_reboot(reboot_command, dry_run=dry_run)
        else:
            logger.info("Reboot required but not allowed; leaving it to the caller")
    return outcome
