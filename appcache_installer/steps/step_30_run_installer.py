from __future__ import annotations

import logging

from ..errors import InstallerNotFoundError, InstallExitCodeError
from ..installer import OutcomeStatus, installer_kind, run_installer
from ..pipeline import RunContext, RunState

logger = logging.getLogger(__name__)


class RunInstallerStep:
    step_id = "30_run_installer"

    def run(self, ctx: RunContext, state: RunState) -> RunState:
        res = state.resolution
        if res is None:
            raise InstallerNotFoundError("No installer resolved; run the resolve step first")

        req = ctx.request
        cfg = ctx.config
        outcome = run_installer(
            res.installer_path,
            installer_kind(res.installer_path),
            req.msi_args,
            req.exe_args,
            req.allow_reboot,
            timeout_s=cfg.install_timeout_s,
            msiexec=cfg.msiexec,
            reboot_command=cfg.reboot_command,
            dry_run=ctx.dry_run,
        )
        state = state.evolve(outcome=outcome)
        if outcome.status is OutcomeStatus.FAILED:
            err = InstallExitCodeError(outcome)
            err.run_state = state  # type: ignore[attr-defined]
            raise err
        return state
