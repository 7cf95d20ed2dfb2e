import logging
import os
import threading

from interfaces.tile_server import IFailureSink
from models.tile import FailureLogEntry
from exceptions.tile_downloader_exceptions import StorageError

logger = logging.getLogger(__name__)


class FailureLog(IFailureSink):
    """Append-only text log of tiles that exhausted their retries.

    One line per failure: ``z=<z>, x=<x>, y=<y>, url=<url>``. The file is
    never read back or truncated, so entries from earlier runs are kept and a
    tile that fails again is simply appended again.
    """

    def __init__(self, path: str = 'failed_tiles.log'):
        self.path = path
        self._lock = threading.Lock()

    def open(self) -> None:
        """Create the log file empty if it does not exist yet"""
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            if not os.path.exists(self.path):
                with open(self.path, 'w', encoding='utf-8'):
                    pass
        except OSError as e:
            raise StorageError(f"Cannot create failure log {self.path}: {e}") from e

    def record(self, entry: FailureLogEntry) -> None:
        line = entry.to_line()
        with self._lock:
            try:
                with open(self.path, 'a', encoding='utf-8') as f:
                    f.write(line)
            except OSError as e:
                raise StorageError(f"Cannot append to failure log {self.path}: {e}") from e
        logger.debug("Recorded failed tile %s/%s/%s", entry.z, entry.x, entry.y)
