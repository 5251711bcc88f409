import threading
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Deque, List, Optional, Tuple


class RunState:
    """Thread-safe counters for one rename run."""

    def __init__(self, recent_failures_max: int = 10):
        self._lock = threading.RLock()

        # Per-file outcomes
        self.renamed_count = 0
        self.reported_count = 0
        self.skipped_count = 0
        self.unchanged_count = 0
        self.failed_count = 0

        # Worker health
        self.failed_workers = 0

        # Global status
        self.files_found = 0
        self.roots: List[Path] = []
        self.finished = False
        self.cancelled = False
        self.start_time = datetime.now()
        self.finish_time: Optional[datetime] = None

        self.recent_failures: Deque[Tuple[Path, str]] = deque(maxlen=recent_failures_max)

    def increment(self, counter: str) -> None:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + 1)

    def add_failure(self, path: Path, message: str) -> None:
        with self._lock:
            self.failed_count += 1
            self.recent_failures.append((path, message))

    @property
    def processed_count(self) -> int:
        with self._lock:
            return (
                self.renamed_count
                + self.reported_count
                + self.skipped_count
                + self.unchanged_count
                + self.failed_count
            )

    @property
    def elapsed_seconds(self) -> float:
        end = self.finish_time or datetime.now()
        return (end - self.start_time).total_seconds()
