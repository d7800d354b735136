from __future__ import annotations

import logging
import os
import tarfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Optional

from ..errors import ArchiveError, InstallerNotFoundError

logger = logging.getLogger(__name__)

_TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz2", ".tar.xz", ".txz")


def is_archive(name: str) -> bool:
    lower = name.lower()
    return lower.endswith(".zip") or lower.endswith(_TAR_SUFFIXES)


def _check_member(dest: Path, member_name: str) -> None:
    target = (dest / member_name).resolve()
    try:
        target.relative_to(dest)
    except ValueError as e:
        raise ArchiveError(f"Archive member escapes destination: {member_name}") from e


def _unpack(archive_path: Path, dest: Path) -> None:
    name = archive_path.name.lower()
    if name.endswith(".zip"):
        with zipfile.ZipFile(archive_path) as zf:
            for member in zf.namelist():
                _check_member(dest, member)
            zf.extractall(dest)
    elif name.endswith(_TAR_SUFFIXES):
        with tarfile.open(archive_path, mode="r:*") as tf:
            for member in tf.getmembers():
                _check_member(dest, member.name)
                if member.issym() or member.islnk():
                    raise ArchiveError(f"Archive contains links, refusing: {member.name}")
            tf.extractall(dest)
    else:
        raise ArchiveError(f"Unsupported archive type: {archive_path.name}")


def list_tree(root: str | Path) -> List[str]:
    """Recursive listing of root, relative POSIX paths in walk order."""
    base = Path(root)
    out: List[str] = []
    if not base.is_dir():
        return out
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        rel_dir = Path(dirpath).relative_to(base)
        for d in dirnames:
            out.append((rel_dir / d).as_posix() + "/")
        for f in sorted(filenames):
            out.append((rel_dir / f).as_posix())
    return out


def log_tree(root: str | Path, *, level: int = logging.ERROR) -> None:
    entries = list_tree(root)
    logger.log(level, "Contents of %s (%d entries):", root, len(entries))
    for entry in entries:
        logger.log(level, "  %s", entry)


def find_installer(root: str | Path, installer_name: str) -> Optional[str]:
    """First file under root whose name equals the base name of installer_name.

    Case-sensitive; directories and files are visited in sorted order so the
    result only depends on filesystem contents.
    """

    base = Path(root)
    wanted = PurePosixPath(installer_name.replace("\\", "/")).name
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        if wanted in filenames:
            return (Path(dirpath) / wanted).relative_to(base).as_posix()
    return None


def extract_installer(archive_path: str | Path, dest_dir: str | Path, installer_name: str) -> str:
    """Unpack archive_path into dest_dir and locate the installer inside it.

    Existing files in dest_dir are overwritten. The archive is deleted once
    unpacked. Returns the installer path relative to dest_dir (POSIX form).
    """

    archive = Path(archive_path)
    dest = Path(dest_dir)
    dest.mkdir(parents=True, exist_ok=True)
    dest = dest.resolve()

    logger.info("Extracting %s -> %s", archive, dest)
    try:
        _unpack(archive, dest)
    except (zipfile.BadZipFile, tarfile.TarError) as e:
        raise ArchiveError(f"Could not extract {archive}: {e}") from e

    archive.unlink()
    logger.info("Removed archive %s", archive)

    rel = find_installer(dest, installer_name)
    if rel is None:
        log_tree(dest)
        raise InstallerNotFoundError(f"{installer_name} not found in extracted archive {archive.name}")
    logger.info("Found installer %s in %s", rel, dest)
    return rel
