import logging
import threading
from typing import Callable, List

logger = logging.getLogger(__name__)


class CancellationToken:
    """Two-stage cancellation shared by the producer, the workers and the CLI.

    ``cancel()`` is the soft stage: stop handing out work, let in-flight
    requests finish, then drain. ``hard_cancel()`` additionally runs the
    registered hard-stop callbacks (used to kill ExifTool process groups)
    right before the process exits.
    """

    def __init__(self):
        self._soft = threading.Event()
        self._hard = threading.Event()
        # Reentrant: escalate() runs inside a signal handler on the main thread
        self._lock = threading.RLock()
        self._hard_callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._soft.is_set()

    @property
    def hard_cancelled(self) -> bool:
        return self._hard.is_set()

    def cancel(self) -> None:
        self._soft.set()

    def wait(self, timeout: float) -> bool:
        """Blocks up to ``timeout`` seconds; True once soft-cancelled."""
        return self._soft.wait(timeout)

    def on_hard_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Registers a hard-stop callback; returns a function that unregisters it."""
        with self._lock:
            self._hard_callbacks.append(callback)

        def unregister() -> None:
            with self._lock:
                if callback in self._hard_callbacks:
                    self._hard_callbacks.remove(callback)

        return unregister

    def hard_cancel(self) -> None:
        self._soft.set()
        if self._hard.is_set():
            return
        self._hard.set()
        with self._lock:
            callbacks = list(self._hard_callbacks)
        for callback in callbacks:
            try:
                callback()
            except OSError as exc:
                logger.warning(f"HARD_CANCEL_CALLBACK_FAILED: {exc}")

    def escalate(self) -> bool:
        """First call cancels softly, any later call hard-cancels. Returns True on the hard stage."""
        with self._lock:
            already_cancelled = self._soft.is_set()
            self._soft.set()
        if already_cancelled:
            self.hard_cancel()
            return True
        return False
