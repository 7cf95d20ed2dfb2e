import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class RunSummary:
    success: int = 0
    fail: int = 0
    skipped: int = 0

    def __str__(self) -> str:
        return f"success: {self.success}, failed: {self.fail}, skipped: {self.skipped}"


class RunCounters:
    """Progress counters shared by all download tasks of a run.

    Every update goes through one lock so concurrent increments are never lost.
    Success and skip events also advance a report counter; the update that
    brings it to ``log_interval`` is told to report and resets it.
    """

    def __init__(self, log_interval: int = 2000):
        self.log_interval = log_interval
        self._lock = threading.Lock()
        self._success = 0
        self._fail = 0
        self._skipped = 0
        self._since_report = 0

    @property
    def success(self) -> int:
        with self._lock:
            return self._success

    def add_success(self) -> bool:
        with self._lock:
            self._success += 1
            return self._tick()

    def add_skipped(self) -> bool:
        with self._lock:
            self._skipped += 1
            return self._tick()

    def add_fail(self) -> None:
        with self._lock:
            self._fail += 1

    def snapshot(self) -> RunSummary:
        with self._lock:
            return RunSummary(success=self._success, fail=self._fail, skipped=self._skipped)

    def _tick(self) -> bool:
        self._since_report += 1
        if self._since_report >= self.log_interval:
            self._since_report = 0
            return True
        return False
