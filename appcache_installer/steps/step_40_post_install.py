from __future__ import annotations

from ..hooks import run_hook_script
from ..pipeline import RunContext, RunState


class PostInstallStep:
    step_id = "40_post_install"

    def run(self, ctx: RunContext, state: RunState) -> RunState:
        run_hook_script(ctx.request.post_script, "Post-install", dry_run=ctx.dry_run)
        return state
