from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from ..errors import IntegrityError, ValidationError

logger = logging.getLogger(__name__)

BLOCK_SIZE = 8192  # 8KB blocks keep memory flat for large installers


def new_hash(algorithm: str):
    """hashlib object for algorithm; only fixed-length digests are accepted."""
    try:
        h = hashlib.new(algorithm)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Unsupported hash algorithm: {algorithm}") from e
    # shake_* report digest_size 0 and need an explicit output length
    if not h.digest_size:
        raise ValidationError(f"Variable-length hash algorithm not supported: {algorithm}")
    return h


def compute_file_hash(path: str | Path, algorithm: str = "sha256") -> str:
    """Hex digest of a file's content, read in blocks."""
    h = new_hash(algorithm)
    with open(path, "rb") as f:
        while True:
            chunk = f.read(BLOCK_SIZE)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def verify_hash(path: str | Path, expected_hash: str, algorithm: str = "sha256") -> None:
    """Raise IntegrityError when the digest of path differs from expected_hash.

    No-op when expected_hash is empty. The file is left in place on mismatch.
    """

    if not expected_hash:
        return
    actual = compute_file_hash(path, algorithm)
    if actual.lower() != expected_hash.strip().lower():
        logger.error("Hash mismatch for %s: expected %s, got %s (%s)", path, expected_hash, actual, algorithm)
        raise IntegrityError(f"Hash mismatch for {path}: expected {expected_hash}, got {actual}")
    logger.info("Hash verified for %s (%s)", path, algorithm)
