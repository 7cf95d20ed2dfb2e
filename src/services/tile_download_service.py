import logging
import os
import threading
import time
from typing import Callable, Dict, Optional

import requests
from requests.adapters import HTTPAdapter

from interfaces.tile_server import ITileFetcher
from utils.file_utils import FileUtils
from utils.retry_policy import RetryPolicy
from exceptions.tile_downloader_exceptions import DownloadError, StorageError

logger = logging.getLogger(__name__)


class TileDownloadService(ITileFetcher):
    """Service for downloading single map tiles to disk"""

    def __init__(self, retry_policy: Optional[RetryPolicy] = None, timeout: float = 10,
                 headers: Optional[Dict[str, str]] = None, pool_size: int = 20,
                 sleep: Callable[[float], None] = time.sleep):
        self.retry_policy = retry_policy or RetryPolicy.fixed()
        self.timeout = timeout
        self.headers = headers or {}
        self.pool_size = pool_size
        self._sleep = sleep
        self._local = threading.local()

    def create_session(self) -> requests.Session:
        """Create a pooled session. Retries are counted here, not by urllib3."""
        session = requests.Session()

        adapter = HTTPAdapter(
            max_retries=0,
            pool_connections=self.pool_size,
            pool_maxsize=self.pool_size
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def _get_session(self) -> requests.Session:
        # requests.Session is not thread-safe; keep one per worker thread
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self.create_session()
            self._local.session = session
        return session

    def fetch_tile(self, url: str, dest_path: str) -> bool:
        """Download url into dest_path.

        Returns False once every attempt failed with a network error, a
        timeout, a non-2xx status or an empty body. Local filesystem errors are
        not retried and raise StorageError.
        """
        attempts = self.retry_policy.max_attempts

        for attempt in range(attempts):
            try:
                self._ensure_parent(dest_path)
                content = self._download(url)
                self._write(dest_path, content)
                return True

            except (requests.RequestException, DownloadError) as e:
                logger.debug("Attempt %d/%d failed for %s: %s", attempt + 1, attempts, url, e)
                if attempt == attempts - 1:
                    logger.warning("Giving up on %s after %d attempts: %s", url, attempts, e)
                    return False
                self._sleep(self.retry_policy.delay_for(attempt))

        return False

    def _download(self, url: str) -> bytes:
        response = self._get_session().get(url, headers=self.headers, timeout=self.timeout)
        response.raise_for_status()

        content = response.content
        if not content:
            raise DownloadError(f"Empty content received from {url}")
        return content

    @staticmethod
    def _ensure_parent(dest_path: str) -> None:
        try:
            FileUtils.ensure_directory_exists(os.path.dirname(dest_path) or '.')
        except OSError as e:
            raise StorageError(f"Cannot create directory for {dest_path}: {e}") from e

    @staticmethod
    def _write(dest_path: str, content: bytes) -> None:
        """Write via a sibling temp file so dest_path only ever holds a full body"""
        tmp_path = dest_path + '.part'
        try:
            with open(tmp_path, 'wb') as f:
                f.write(content)
            os.replace(tmp_path, dest_path)
        except OSError as e:
            raise StorageError(f"Cannot write tile {dest_path}: {e}") from e
