from __future__ import annotations

import logging

from ..cache import CacheResolver
from ..pipeline import RunContext, RunState

logger = logging.getLogger(__name__)


class ResolveInstallerStep:
    step_id = "20_resolve_installer"

    def run(self, ctx: RunContext, state: RunState) -> RunState:
        resolver = CacheResolver(
            ctx.request,
            network_root=ctx.config.network_root,
            local_root=ctx.config.local_cache_root,
            downloader=ctx.downloader,
        )
        resolution = resolver.resolve()
        logger.info(
            "Installer resolved via %s: %s",
            " -> ".join(s.value for s in resolution.trail),
            resolution.installer_path,
        )
        return state.evolve(resolution=resolution)
