from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .errors import ValidationError
from .lib.env import PATHS, TRUSTED_HOSTS_ENV

DEFAULT_INSTALL_TIMEOUT_S = 3600
DEFAULT_DOWNLOAD_TIMEOUT_S = 300
DEFAULT_MIN_FREE_MB = 512


def _default_reboot_command() -> List[str]:
    if sys.platform == "win32":
        return ["shutdown", "/r", "/t", "60", "/c", "Installation requires a restart"]
    return ["shutdown", "-r", "+1"]


@dataclass(frozen=True)
class InstallerConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _paths(self) -> Dict[str, Any]:
        return self.raw.get("paths") or {}

    @property
    def trusted_hosts(self) -> List[str]:
        return [str(h) for h in (self.raw.get("trusted_hosts") or [])]

    @property
    def network_root(self) -> Optional[str]:
        v = self._paths().get("network_root")
        return str(v) if v else None

    @property
    def local_cache_root(self) -> str:
        return str(self._paths().get("local_cache_root") or PATHS.local_cache_root)

    @property
    def log_path(self) -> str:
        return str(self._paths().get("log_path") or PATHS.log_default)

    @property
    def permanent_log_dir(self) -> str:
        return str(self._paths().get("permanent_log_dir") or PATHS.permanent_log_dir)

    @property
    def install_timeout_s(self) -> Optional[float]:
        """Hard limit on the installer process; 0 or null waits forever."""
        v = (self.raw.get("install") or {}).get("timeout_s", DEFAULT_INSTALL_TIMEOUT_S)
        return float(v) if v else None

    @property
    def msiexec(self) -> str:
        return str((self.raw.get("install") or {}).get("msiexec") or "msiexec")

    @property
    def reboot_command(self) -> List[str]:
        v = (self.raw.get("install") or {}).get("reboot_command")
        return [str(a) for a in v] if v else _default_reboot_command()

    @property
    def download_timeout_s(self) -> float:
        return float((self.raw.get("download") or {}).get("timeout_s") or DEFAULT_DOWNLOAD_TIMEOUT_S)

    @property
    def curl(self) -> Optional[str]:
        v = (self.raw.get("download") or {}).get("curl")
        return str(v) if v else None

    @property
    def delete_attempts(self) -> int:
        return int((self.raw.get("cleanup") or {}).get("delete_attempts") or 3)

    @property
    def delete_retry_delay_s(self) -> float:
        v = (self.raw.get("cleanup") or {}).get("delete_retry_delay_s")
        return 1.0 if v is None else float(v)

    @property
    def min_free_mb(self) -> int:
        v = (self.raw.get("preflight") or {}).get("min_free_mb")
        return DEFAULT_MIN_FREE_MB if v is None else int(v)

    @property
    def require_admin(self) -> bool:
        return bool((self.raw.get("preflight") or {}).get("require_admin", False))

    def with_overrides(self, **overrides: Any) -> "InstallerConfig":
        """Return a copy with section overrides applied, e.g. ``paths__network_root``.

        None values are ignored so unset CLI flags keep the configured value.
        """

        raw: Dict[str, Any] = {k: (dict(v) if isinstance(v, dict) else v) for k, v in self.raw.items()}
        for key, value in overrides.items():
            if value is None:
                continue
            section, _, name = key.partition("__")
            if name:
                raw.setdefault(section, {})[name] = value
            else:
                raw[section] = value
        return InstallerConfig(raw=raw)


def load_config(path: Optional[str], environ: Optional[Mapping[str, str]] = None) -> InstallerConfig:
    raw: Dict[str, Any] = {}
    if path:
        p = Path(path)
        if not p.exists():
            raise ValidationError(f"Config file not found: {path}")
        if p.suffix.lower() not in {".yaml", ".yml"}:
            raise ValidationError("installer config must be YAML")
        try:
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ValidationError(f"{path} must contain a mapping/object")

    env = os.environ if environ is None else environ
    hosts = env.get(TRUSTED_HOSTS_ENV)
    if hosts:
        raw["trusted_hosts"] = [h.strip() for h in hosts.split(",") if h.strip()]

    return InstallerConfig(raw=raw)
