"""Cache-aware resolution of the installer binary.

A run first tries the shared network cache (``<network_root>/<app_name>``),
populating it when the installer is missing, and then mirrors that app
directory into the per-machine local cache. When the network root is not
reachable, or anything goes wrong while working on it, the installer is
fetched straight into the local cache instead.

States::

    INIT -> NETWORK_CHECK -> NETWORK_HIT  --+
                          -> NETWORK_MISS --+-> LOCAL_MIRROR -> RESOLVED
                          -> NETWORK_UNAVAILABLE -> LOCAL_ONLY -> RESOLVED
    (error in NETWORK_HIT/MISS/LOCAL_MIRROR) -> NETWORK_FALLBACK -> LOCAL_ONLY

The network cache has several writers (every machine running this app's
install) and no locking: an installer that is already present counts as a
hit, and two first-time runs may both download, the last writer winning.
A download that fails its hash check is renamed to ``*.rejected`` so no
later run can pick it up as a hit.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from .errors import CacheInconsistencyError, InstallerNotFoundError, IntegrityError, ValidationError
from .lib.archive import extract_installer, find_installer, is_archive, log_tree
from .lib.download import Downloader
from .lib.fsops import copy_tree, move_file, remove_path
from .lib.hashing import verify_hash
from .lib.net import is_share_reachable
from .request import InstallRequest

logger = logging.getLogger(__name__)


REJECTED_SUFFIX = ".rejected"


def _quarantine(path: Path) -> None:
    """Keep a file that failed its hash check, under a name nothing resolves to."""
    if not path.is_file():
        return
    target = path.with_name(path.name + REJECTED_SUFFIX)
    move_file(path, target)
    logger.error("Rejected download kept for inspection at %s", target)


class ResolveState(str, enum.Enum):
    INIT = "init"
    NETWORK_CHECK = "network_check"
    NETWORK_HIT = "network_hit"
    NETWORK_MISS = "network_miss"
    NETWORK_UNAVAILABLE = "network_unavailable"
    NETWORK_FALLBACK = "network_fallback"
    LOCAL_MIRROR = "local_mirror"
    LOCAL_ONLY = "local_only"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class CacheLocation:
    root: Path
    app_name: str
    installer_relative_path: str
    archive_name: str

    @classmethod
    def for_request(cls, root: str | Path, req: InstallRequest) -> "CacheLocation":
        return cls(
            root=Path(root),
            app_name=req.app_name,
            installer_relative_path=req.installer_relative_path,
            archive_name=req.source_filename,
        )

    @property
    def app_dir(self) -> Path:
        return self.root / self.app_name

    @property
    def archive_path(self) -> Path:
        return self.app_dir / self.archive_name

    @property
    def installer_path(self) -> Path:
        return self.path_of(self.installer_relative_path)

    def path_of(self, relative: str) -> Path:
        return self.app_dir.joinpath(*PurePosixPath(relative).parts)


@dataclass(frozen=True)
class Resolution:
    installer_path: Path
    relative_path: str
    source: str  # network | local
    trail: Tuple[ResolveState, ...]
    local_archive_path: Path


class CacheResolver:
    def __init__(
        self,
        request: InstallRequest,
        *,
        network_root: Optional[str],
        local_root: str,
        downloader: Downloader,
    ):
        self.request = request
        self.network_root = network_root
        self.downloader = downloader
        self.local = CacheLocation.for_request(local_root, request)
        self.network = CacheLocation.for_request(network_root, request) if network_root else None

    def resolve(self) -> Resolution:
        trail: List[ResolveState] = [ResolveState.INIT, ResolveState.NETWORK_CHECK]

        if self.network is None or not is_share_reachable(self.network_root):
            logger.info("Network cache unavailable (%s); using local cache only", self.network_root)
            trail.append(ResolveState.NETWORK_UNAVAILABLE)
            return self._resolve_local_only(trail)

        try:
            state, relative = self._populate_network(self.network)
            trail.append(state)
            network_installer = self._verify_network(self.network, relative)
            trail.append(ResolveState.LOCAL_MIRROR)
            local_installer = self._mirror(self.network, relative)
        except (ValidationError, IntegrityError):
            raise
        except Exception as e:
            logger.warning("Network cache handling failed (%s: %s); falling back to local-only", type(e).__name__, e)
            trail.append(ResolveState.NETWORK_FALLBACK)
            return self._resolve_local_only(trail)

        logger.info("Resolved installer %s (mirrored from %s)", local_installer, network_installer)
        trail.append(ResolveState.RESOLVED)
        return Resolution(
            installer_path=local_installer,
            relative_path=relative,
            source="network",
            trail=tuple(trail),
            local_archive_path=self.local.archive_path,
        )

    def _populate_network(self, loc: CacheLocation) -> Tuple[ResolveState, str]:
        relative = self._cached_installer(loc)
        if relative is not None:
            logger.info("Network cache hit: %s", loc.path_of(relative))
            return ResolveState.NETWORK_HIT, relative

        logger.info("Network cache miss for %s; populating %s", loc.installer_relative_path, loc.app_dir)
        return ResolveState.NETWORK_MISS, self._fetch_into(loc)

    def _cached_installer(self, loc: CacheLocation) -> Optional[str]:
        """Relative path of a usable installer already in loc, if any.

        An archive may have unpacked the installer below the expected path, so
        the app dir is searched the same way extraction does. A plain installer
        is the downloaded file itself and is re-checked against the expected
        digest; a mismatch counts as a miss.
        """

        req = self.request
        if loc.installer_path.is_file():
            relative: Optional[str] = loc.installer_relative_path
        elif loc.app_dir.is_dir():
            relative = find_installer(loc.app_dir, req.installer_relative_path)
        else:
            relative = None
        if relative is None:
            return None

        if req.expected_hash and not is_archive(req.source_filename):
            try:
                verify_hash(loc.path_of(relative), req.expected_hash, req.hash_algorithm)
            except IntegrityError:
                logger.warning("Cached installer %s fails hash check; downloading again", loc.path_of(relative))
                return None
        return relative

    def _verify_network(self, loc: CacheLocation, relative: str) -> Path:
        installer = loc.path_of(relative)
        if not installer.is_file():
            log_tree(loc.app_dir)
            raise CacheInconsistencyError(f"Network cache reports ready but {installer} is missing")
        return installer

    def _mirror(self, loc: CacheLocation, relative: str) -> Path:
        logger.info("Mirroring %s -> %s", loc.app_dir, self.local.app_dir)
        copy_tree(loc.app_dir, self.local.app_dir)
        installer = self.local.path_of(relative)
        if not installer.is_file():
            log_tree(self.local.app_dir)
            raise InstallerNotFoundError(f"Mirrored installer missing: {installer}")
        return installer

    def _resolve_local_only(self, trail: List[ResolveState]) -> Resolution:
        trail.append(ResolveState.LOCAL_ONLY)
        # Start clean: nothing mirrored from a half-populated share survives.
        remove_path(self.local.app_dir)
        relative = self._fetch_into(self.local)

        installer = self.local.path_of(relative)
        if not installer.is_file():
            log_tree(self.local.app_dir)
            raise InstallerNotFoundError(f"Installer not found after local resolution: {installer}")

        logger.info("Resolved installer %s (local download)", installer)
        trail.append(ResolveState.RESOLVED)
        return Resolution(
            installer_path=installer,
            relative_path=relative,
            source="local",
            trail=tuple(trail),
            local_archive_path=self.local.archive_path,
        )

    def _fetch_into(self, loc: CacheLocation) -> str:
        """Download into loc, extract or rename, and return the installer's relative path."""

        req = self.request
        loc.app_dir.mkdir(parents=True, exist_ok=True)
        try:
            downloaded = self.downloader.download(
                req.source_url,
                loc.archive_path,
                expected_hash=req.expected_hash,
                algorithm=req.hash_algorithm,
            )
        except IntegrityError:
            _quarantine(loc.archive_path)
            raise

        if is_archive(downloaded.name):
            return extract_installer(downloaded, loc.app_dir, req.installer_relative_path)

        if downloaded != loc.installer_path:
            move_file(downloaded, loc.installer_path)
        return loc.installer_relative_path
