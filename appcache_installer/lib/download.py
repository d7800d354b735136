from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

import requests

from ..errors import DownloadError
from .command import run_cmd
from .hashing import verify_hash

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class Downloader:
    """Fetch a URL to a local file.

    The primary transfer is a streamed ``requests`` GET. On any failure the
    transfer is retried once with ``curl``, which is tuned for slow or
    throttled links (low-speed abort window and its own retries).
    Both write to the same destination path.
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: float = 300,
        curl_path: Optional[str] = None,
    ):
        self.session = session or requests.Session()
        self.timeout_s = timeout_s
        self.curl_path = curl_path

    def download(
        self,
        url: str,
        destination: str | Path,
        expected_hash: str = "",
        algorithm: str = "sha256",
    ) -> Path:
        dest = Path(destination)
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Downloading %s -> %s", url, dest)

        try:
            self._download_with_requests(url, dest)
        except Exception as e:
            logger.warning("Primary download failed (%s); retrying with curl", e)
            self._download_with_curl(url, dest)

        if not dest.is_file() or dest.stat().st_size == 0:
            raise DownloadError(f"Download produced no data: {dest}")

        logger.info("Downloaded %s (%d bytes)", dest, dest.stat().st_size)
        verify_hash(dest, expected_hash, algorithm)
        return dest

    def _download_with_requests(self, url: str, dest: Path) -> None:
        tmp = dest.with_name(dest.name + ".part")
        try:
            with self.session.get(url, stream=True, timeout=self.timeout_s) as r:
                r.raise_for_status()
                with open(tmp, "wb") as fh:
                    for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            fh.write(chunk)
            os.replace(tmp, dest)
        finally:
            if tmp.exists():
                tmp.unlink()

    def _download_with_curl(self, url: str, dest: Path) -> None:
        curl = self.curl_path or shutil.which("curl")
        if not curl:
            raise DownloadError(f"Download failed and curl is not available: {url}")

        argv = [
            curl,
            "-L",
            "--fail",
            "--silent",
            "--show-error",
            "--retry",
            "3",
            "--speed-limit",
            "1024",
            "--speed-time",
            "120",
            "-o",
            str(dest),
            url,
        ]
        if dest.exists():
            dest.unlink()
        try:
            r = run_cmd(argv, check=False)
        except OSError as e:
            raise DownloadError(f"Could not launch curl for {url}: {e}") from e
        if r.returncode != 0:
            raise DownloadError(f"curl failed ({r.returncode}) for {url}: {r.stderr.strip()}")
