import logging
import os
import queue
import re
from pathlib import Path
from typing import Callable, Generator, Iterable, List, Optional

from jpegid.domain.cancellation import CancellationToken
from jpegid.domain.errors import Cancelled, DiscoveryError, NoWorkersError


class FileScanner:
    """Walks root directories and yields files whose name matches a pattern."""

    def __init__(self, patterns: List[re.Pattern], recursive: bool = False, poll_interval_s: float = 0.1):
        self.patterns = list(patterns)
        self.recursive = recursive
        self.poll_interval_s = poll_interval_s
        self.emitted = 0
        self.logger = logging.getLogger(__name__)

    def match(self, name: str) -> Optional[re.Pattern]:
        """Returns the first pattern found in the base name, if any."""
        for pattern in self.patterns:
            if pattern.search(name):
                return pattern
        return None

    def scan(self, root_dir: Path) -> Generator[Path, None, None]:
        """Yields matching files under root_dir in sorted, depth-first order.

        Without ``recursive`` only the root's own entries are listed. Any
        directory that cannot be read raises DiscoveryError.
        """
        def _on_error(err: OSError):
            raise DiscoveryError(f"Cannot read directory {err.filename}: {err.strerror or err}") from err

        for root, dirs, files in os.walk(str(root_dir), onerror=_on_error):
            if self.recursive:
                dirs.sort()
            else:
                dirs[:] = []  # stop recursion below the root
            files.sort()

            root_path = Path(root)
            for file_name in files:
                if self.match(file_name) is None:
                    continue
                yield root_path / file_name

    def feed(
        self,
        roots: Iterable[Path],
        tasks: "queue.Queue[Path]",
        token: CancellationToken,
        consumers_alive: Optional[Callable[[], bool]] = None,
    ) -> int:
        """Puts every matching file on the task queue; returns how many were sent.

        Each put waits for a free slot while watching the token, so a
        cancelled run never leaves the producer blocked. Raises Cancelled on
        cancellation and NoWorkersError when nobody is left to take tasks.
        """
        self.emitted = 0
        for root in roots:
            if token.cancelled:
                raise Cancelled("discovery cancelled")
            self.logger.info(f"DISCOVERY_ROOT: {root} (recursive={self.recursive})")
            for path in self.scan(root):
                self._emit(path, tasks, token, consumers_alive)
                self.emitted += 1
        return self.emitted

    def _emit(
        self,
        path: Path,
        tasks: "queue.Queue[Path]",
        token: CancellationToken,
        consumers_alive: Optional[Callable[[], bool]],
    ) -> None:
        while True:
            if token.cancelled:
                raise Cancelled("discovery cancelled")
            if consumers_alive is not None and not consumers_alive():
                raise NoWorkersError(f"No workers left to process {path}")
            try:
                tasks.put(path, timeout=self.poll_interval_s)
                return
            except queue.Full:
                continue
