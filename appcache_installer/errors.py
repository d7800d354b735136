from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .installer import RunOutcome


class InstallerError(RuntimeError):
    """Base class for every failure the installer reports."""


class ValidationError(InstallerError, ValueError):
    """Bad invocation parameter: untrusted URL, missing app name, bad path."""


class DownloadError(InstallerError):
    pass


class IntegrityError(InstallerError):
    """Downloaded content does not match the expected digest."""


class ArchiveError(InstallerError):
    pass


class InstallerNotFoundError(InstallerError):
    pass


class CacheInconsistencyError(InstallerError):
    """The network cache was populated but the installer is not where expected."""


class HookScriptError(InstallerError):
    pass


class InstallExitCodeError(InstallerError):
    def __init__(self, outcome: "RunOutcome") -> None:
        super().__init__(outcome.reason)
        self.outcome = outcome


class CleanupError(InstallerError):
    """Only ever logged; cleanup never fails a run."""
