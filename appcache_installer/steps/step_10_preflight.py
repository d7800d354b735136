from __future__ import annotations

import logging

from ..errors import ValidationError
from ..hooks import run_hook_script
from ..lib.system import free_space_mb, is_admin
from ..pipeline import RunContext, RunState

logger = logging.getLogger(__name__)


class PreflightStep:
    step_id = "10_preflight"

    def run(self, ctx: RunContext, state: RunState) -> RunState:
        cfg = ctx.config

        if cfg.require_admin and not is_admin():
            raise ValidationError("Administrator privileges are required")

        if cfg.min_free_mb > 0:
            free = free_space_mb(cfg.local_cache_root)
            logger.info("Free space at %s: %d MB", cfg.local_cache_root, free)
            if free < cfg.min_free_mb:
                raise ValidationError(
                    f"Not enough free space at {cfg.local_cache_root}: {free} MB < {cfg.min_free_mb} MB"
                )

        run_hook_script(ctx.request.pre_script, "Pre-install", dry_run=ctx.dry_run)
        return state
