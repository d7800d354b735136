from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Iterable, Optional
from urllib.parse import unquote, urlsplit

from .errors import ValidationError
from .lib.hashing import new_hash

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

DEFAULT_MSI_ARGS = "/qn"
DEFAULT_EXE_ARGS = "/VERYSILENT"
DEFAULT_HASH_ALGORITHM = "sha256"


class TrustedHosts:
    """Allow-list of source hosts; exact hostname match, no wildcards."""

    def __init__(self, hosts: Iterable[str]):
        self._hosts = frozenset(h.strip().lower() for h in hosts if h and h.strip())

    def __contains__(self, host: object) -> bool:
        return isinstance(host, str) and host.lower() in self._hosts

    def __bool__(self) -> bool:
        return bool(self._hosts)

    def check_url(self, url: str) -> str:
        """Validate scheme and host of url; returns the hostname."""

        if not url or not _URL_RE.match(url):
            raise ValidationError(f"Source URL must start with http:// or https://: {url!r}")
        host = urlsplit(url).hostname
        if not host:
            raise ValidationError(f"Source URL has no host: {url!r}")
        if host not in self:
            raise ValidationError(f"Source host {host!r} is not in the trusted host list")
        return host


@dataclass(frozen=True)
class InstallRequest:
    source_url: str
    app_name: str
    installer_relative_path: str
    msi_args: str = DEFAULT_MSI_ARGS
    exe_args: str = DEFAULT_EXE_ARGS
    expected_hash: str = ""
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    allow_reboot: bool = False
    pre_script: Optional[str] = None
    post_script: Optional[str] = None

    @property
    def source_filename(self) -> str:
        """Last path segment of the source URL, e.g. ``app.zip``."""
        name = PurePosixPath(unquote(urlsplit(self.source_url).path)).name
        return name or PurePosixPath(self.installer_relative_path).name

    @property
    def installer_name(self) -> str:
        return PurePosixPath(self.installer_relative_path).name


def _normalize_relative(path: str) -> str:
    # Accept either separator; store POSIX form.
    parts = PureWindowsPath(path).parts if "\\" in path else PurePosixPath(path).parts
    rel = PurePosixPath(*parts) if parts else PurePosixPath()
    if not parts or rel.is_absolute() or PureWindowsPath(path).drive or ".." in parts:
        raise ValidationError(f"Installer path must be relative to the app cache: {path!r}")
    return rel.as_posix()


def build_request(
    *,
    trusted_hosts: TrustedHosts,
    source_url: str,
    app_name: str,
    installer_relative_path: str,
    msi_args: Optional[str] = None,
    exe_args: Optional[str] = None,
    expected_hash: Optional[str] = None,
    hash_algorithm: Optional[str] = None,
    allow_reboot: bool = False,
    pre_script: Optional[str] = None,
    post_script: Optional[str] = None,
) -> InstallRequest:
    """Validate invocation parameters and freeze them into an InstallRequest."""

    trusted_hosts.check_url(source_url)

    app_name = (app_name or "").strip()
    if not app_name:
        raise ValidationError("App name is required")
    if app_name in {".", ".."} or any(sep in app_name for sep in ("/", "\\")):
        raise ValidationError(f"App name must be a single path component: {app_name!r}")

    if not installer_relative_path or not installer_relative_path.strip():
        raise ValidationError("Installer relative path is required")
    rel = _normalize_relative(installer_relative_path.strip())

    algorithm = (hash_algorithm or DEFAULT_HASH_ALGORITHM).lower().replace("-", "")
    new_hash(algorithm)

    for label, script in (("Pre-install", pre_script), ("Post-install", post_script)):
        if script and not Path(script).is_file():
            raise ValidationError(f"{label} script not found: {script}")

    req = InstallRequest(
        source_url=source_url,
        app_name=app_name,
        installer_relative_path=rel,
        msi_args=DEFAULT_MSI_ARGS if msi_args is None else msi_args,
        exe_args=DEFAULT_EXE_ARGS if exe_args is None else exe_args,
        expected_hash=(expected_hash or "").strip(),
        hash_algorithm=algorithm,
        allow_reboot=bool(allow_reboot),
        pre_script=pre_script or None,
        post_script=post_script or None,
    )
    logger.info("Request validated: app=%s url=%s installer=%s", req.app_name, req.source_url, rel)
    return req
