from .step_10_preflight import PreflightStep
from .step_20_resolve_installer import ResolveInstallerStep
from .step_30_run_installer import RunInstallerStep
from .step_40_post_install import PostInstallStep

__all__ = [
    "PreflightStep",
    "ResolveInstallerStep",
    "RunInstallerStep",
    "PostInstallStep",
]
