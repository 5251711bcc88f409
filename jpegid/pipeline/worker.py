import logging
import queue
import random
import threading
import time
from pathlib import Path
from typing import Optional

from jpegid.config.models import RenameOptions
from jpegid.domain.cancellation import CancellationToken
from jpegid.domain.errors import ProtocolError, RenameError, RenameExecutionError, SessionClosedError
from jpegid.domain.events import FileFailed, FileRenamed, FileReported, FileSkipped, FileUnchanged, WorkerFailed
from jpegid.domain.models import RenameAction, WorkerState
from jpegid.infrastructure.event_bus import EventBus
from jpegid.infrastructure.exif_tool import ExifToolSession
from jpegid.infrastructure.output import OutputSink
from jpegid.pipeline.rename import apply_decision, decide

_EVENT_FOR_ACTION = {
    RenameAction.RENAME: FileRenamed,
    RenameAction.REPLACE: FileRenamed,
    RenameAction.REPORT: FileReported,
    RenameAction.SKIP_EXISTS: FileSkipped,
    RenameAction.UNCHANGED: FileUnchanged,
}


class Worker:
    """Takes file paths off the shared queue and renames them via its own ExifTool session.

    Lifecycle: STARTING → READY (session open) → AWAITING_TASK ⇄ PROCESSING →
    DRAINING → CLOSED. A bad file is logged and skipped; a dead session ends
    the worker. The session is closed on every exit path.
    """

    def __init__(
        self,
        worker_id: int,
        session: ExifToolSession,
        tasks: "queue.Queue[Path]",
        token: CancellationToken,
        discovery_done: threading.Event,
        options: RenameOptions,
        output: OutputSink,
        event_bus: EventBus,
        rng: Optional[random.Random] = None,
        poll_interval_s: float = 0.1,
    ):
        self.worker_id = worker_id
        self.session = session
        self.tasks = tasks
        self.token = token
        self.discovery_done = discovery_done
        self.options = options
        self.output = output
        self.event_bus = event_bus
        self.rng = rng
        self.poll_interval_s = poll_interval_s
        self.logger = logging.getLogger(__name__)

        self.state = WorkerState.STARTING
        self.error: Optional[BaseException] = None
        self.failed_at: Optional[float] = None
        self.processed = 0
        self._thread: Optional[threading.Thread] = None

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def open(self) -> None:
        """Launches the worker's ExifTool; raises SessionStartError on failure."""
        self.session.open()
        self.state = WorkerState.READY

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name=f"worker-{self.worker_id}", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self) -> None:
        try:
            while True:
                path = self._next_task()
                if path is None:
                    break
                self._process(path)
        except SessionClosedError as exc:
            if self.token.cancelled:
                self.logger.info(f"WORKER_STOPPED: worker-{self.worker_id} session ended during shutdown")
            else:
                self._fail(exc)
                self.logger.error(f"SESSION_CLOSED: worker-{self.worker_id}: {exc}")
                self.event_bus.publish(WorkerFailed(worker_id=self.worker_id, error_message=str(exc)))
        except Exception as exc:
            self._fail(exc)
            self.logger.exception(f"WORKER_CRASHED: worker-{self.worker_id}: {exc}")
            self.event_bus.publish(WorkerFailed(worker_id=self.worker_id, error_message=str(exc)))
        finally:
            self.state = WorkerState.DRAINING
            self.session.close()
            self.state = WorkerState.CLOSED
            self.logger.debug(f"WORKER_CLOSED: worker-{self.worker_id} processed={self.processed}")

    def _fail(self, exc: BaseException) -> None:
        self.error = exc
        self.failed_at = time.monotonic()

    def _next_task(self) -> Optional[Path]:
        """Blocks for the next path; None once cancelled or discovery is exhausted."""
        self.state = WorkerState.AWAITING_TASK
        while not self.token.cancelled:
            try:
                return self.tasks.get(timeout=self.poll_interval_s)
            except queue.Empty:
                if self.discovery_done.is_set() and self.tasks.empty():
                    return None
        return None

    def _process(self, path: Path) -> None:
        self.state = WorkerState.PROCESSING
        self.processed += 1
        try:
            record = self.session.request(path)
            decision = decide(path, record, self.options, self.rng)
            decision = apply_decision(decision, self.output)
        except SessionClosedError:
            raise
        except (ProtocolError, RenameError, RenameExecutionError) as exc:
            self.logger.error(f"FILE_FAILED: {path}: {exc}")
            self.event_bus.publish(FileFailed(path=path, error_message=str(exc)))
            return

        self.event_bus.publish(_EVENT_FOR_ACTION[decision.action](decision=decision))
