from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass


def _default_base() -> str:
    if os.name == "nt":
        return os.environ.get("ProgramData", r"C:\ProgramData")
    return "/var/lib"


@dataclass(frozen=True)
class Paths:
    local_cache_root: str = os.path.join(tempfile.gettempdir(), "appcache")
    log_default: str = os.path.join(tempfile.gettempdir(), "appcache-install.log")
    permanent_log_dir: str = os.path.join(_default_base(), "appcache-installer", "logs")


PATHS = Paths()

TRUSTED_HOSTS_ENV = "APPCACHE_TRUSTED_HOSTS"
