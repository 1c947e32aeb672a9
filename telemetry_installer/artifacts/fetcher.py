# Path and File Name : /home/elven/telemetry-installer/telemetry_installer/artifacts/fetcher.py
# Author: Elven Observability
# Details of functionality of this file: Streams release artifacts over HTTP with bounded retries and strict success criteria

"""
Artifact Fetcher.

An attempt succeeds only when the server answered HTTP 200 AND the
destination file exists and is non-empty afterwards. Every attempt starts
from an empty file. After `max_retries` failed attempts the last
DownloadError is raised.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional

import requests

from ..errors import DownloadError
from ..retry import with_retry

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


class ArtifactFetcher:
    """HTTP downloader used for every remote artifact."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 60.0,
                 delay: float = 3.0, sleep: Callable[[float], None] = time.sleep):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.delay = delay
        self.sleep = sleep

    def fetch(self, url: str, destination: Path, max_retries: int = 3,
              headers: Optional[Dict[str, str]] = None) -> Path:
        """
        Download `url` to `destination`.

        Args:
            url: Artifact URL
            destination: Local file path (parent directories are created)
            max_retries: Total number of attempts
            headers: Extra request headers (authorization, Accept)

        Returns:
            destination

        Raises:
            DownloadError: After `max_retries` failed attempts
        """
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        def attempt(n: int) -> Path:
            print(f"  Attempt {n} of {max_retries}...")
            return self._download_once(url, destination, headers)

        path = with_retry(attempt, max_attempts=max_retries, delay=self.delay,
                          retry_on=(DownloadError,), sleep=self.sleep,
                          describe=f"download {url}")
        print("✓ Download complete")
        return path

    def _download_once(self, url: str, destination: Path,
                       headers: Optional[Dict[str, str]]) -> Path:
        # a connection dropped mid-body is as retryable as a refused one
        try:
            with self.session.get(url, stream=True, timeout=self.timeout,
                                  headers=headers or {}, allow_redirects=True) as response:
                with open(destination, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
                status = response.status_code
        except requests.RequestException as e:
            raise DownloadError(f"Download failed: {e}", url=url)

        if status != 200:
            raise DownloadError(f"Download failed (HTTP {status}). URL: {url}",
                                url=url, status_code=status)
        if not destination.exists() or destination.stat().st_size == 0:
            raise DownloadError(f"Downloaded file is empty. URL: {url}", url=url, status_code=status)

        logger.info(f"Downloaded {url} -> {destination} ({destination.stat().st_size} bytes)")
        return destination
