from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from appcache_installer.lib.hashing import verify_hash
from appcache_installer.logging_utils import reset_logging


@pytest.fixture(autouse=True)
def _isolated_logging():
    reset_logging()
    yield
    reset_logging()


def make_zip(entries: Dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()


class FakeDownloader:
    """Stands in for Downloader: writes a fixed payload, records every call."""

    def __init__(self, payload: bytes, fail_on: Optional[str] = None):
        self.payload = payload
        self.fail_on = fail_on
        self.calls: List[Path] = []

    def download(self, url, destination, expected_hash="", algorithm="sha256"):
        dest = Path(destination)
        self.calls.append(dest)
        if self.fail_on and self.fail_on in str(dest):
            raise PermissionError(f"write denied: {dest}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.payload)
        verify_hash(dest, expected_hash, algorithm)
        return dest


@pytest.fixture
def zip_payload() -> bytes:
    return make_zip(
        {
            "app-1.0/setup.exe": b"MZ installer",
            "app-1.0/readme.txt": b"hello",
            "app-1.0/data/blob.bin": b"\x00\x01",
        }
    )
