"""Pipeline supervisor for the capture-time renamer.

Wires discovery, the worker pool and shutdown together:

- Opens one ExifTool session per worker before any file is discovered, so a
  task never exists without a ready consumer (a session that fails to start
  aborts the run).
- Runs the file scanner on the calling thread, feeding a one-slot queue.
- On cancellation stops discovery, gives in-flight requests a grace period,
  then terminates the process groups of sessions that are still busy (the
  only way to unblock a pending stdout read).
- Reports the first real failure once the surviving workers have drained the
  queue; user cancellation is not a failure.
"""

import logging
import queue
import random
import threading
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from jpegid.config.models import RunConfig
from jpegid.domain.cancellation import CancellationToken
from jpegid.domain.errors import (
    Cancelled,
    DiscoveryError,
    JpegIdError,
    NoWorkersError,
    SessionStartError,
)
from jpegid.domain.events import DiscoveryFinished, ProcessingFinished
from jpegid.domain.models import RunResult
from jpegid.infrastructure.event_bus import EventBus
from jpegid.infrastructure.exif_tool import ExifToolSession
from jpegid.infrastructure.file_scanner import FileScanner
from jpegid.infrastructure.output import OutputSink
from jpegid.pipeline.worker import Worker


class Orchestrator:
    """Runs one rename pass over a set of root directories.

    Args:
        config: RunConfig with worker count, rename options and exiftool command.
        event_bus: EventBus for file and run lifecycle events.
        file_scanner: FileScanner that produces candidate paths.
        output: Sink for rename reports (stdout).
        diagnostics: Sink for ExifTool's stderr.
        token: Shared cancellation token (the CLI cancels it on SIGINT).
        session_factory: Builds the ExifTool session for a worker id.
        rng: Random source for create-date jitter.
    """

    def __init__(
        self,
        config: RunConfig,
        event_bus: EventBus,
        file_scanner: FileScanner,
        output: OutputSink,
        diagnostics: Optional[OutputSink] = None,
        token: Optional[CancellationToken] = None,
        session_factory: Optional[Callable[[int], ExifToolSession]] = None,
        rng: Optional[random.Random] = None,
        poll_interval_s: float = 0.1,
        kill_timeout_s: float = 3.0,
    ):
        self.config = config
        self.event_bus = event_bus
        self.file_scanner = file_scanner
        self.output = output
        self.diagnostics = diagnostics
        self.token = token or CancellationToken()
        self.session_factory = session_factory or self._default_session
        self.rng = rng
        self.poll_interval_s = poll_interval_s
        self.kill_timeout_s = kill_timeout_s
        self.logger = logging.getLogger(__name__)
        self.workers: List[Worker] = []

    def _default_session(self, worker_id: int) -> ExifToolSession:
        return ExifToolSession(
            self.config.exiftool,
            diagnostics=self.diagnostics,
            name=f"exiftool-{worker_id}",
        )

    def _start_workers(self, tasks: "queue.Queue[Path]", discovery_done: threading.Event) -> List[Worker]:
        workers: List[Worker] = []
        try:
            for worker_id in range(self.config.workers):
                worker = Worker(
                    worker_id=worker_id,
                    session=self.session_factory(worker_id),
                    tasks=tasks,
                    token=self.token,
                    discovery_done=discovery_done,
                    options=self.config.rename_options,
                    output=self.output,
                    event_bus=self.event_bus,
                    rng=self.rng,
                    poll_interval_s=self.poll_interval_s,
                )
                workers.append(worker)
                worker.open()
        except SessionStartError:
            for worker in workers:
                worker.session.close()
            raise

        for worker in workers:
            worker.start()
        self.logger.info(f"WORKERS_STARTED: {len(workers)}")
        return workers

    def _kill_sessions(self) -> None:
        for worker in self.workers:
            worker.session.kill()

    def _any_worker_alive(self) -> bool:
        return any(worker.alive for worker in self.workers)

    def _wait_for_workers(self) -> None:
        """Joins all workers, escalating to SIGTERM/SIGKILL once cancelled."""
        grace_deadline: Optional[float] = None
        kill_deadline: Optional[float] = None
        killed = False

        while True:
            alive = [worker for worker in self.workers if worker.alive]
            if not alive:
                return

            if self.token.cancelled:
                now = time.monotonic()
                if grace_deadline is None:
                    grace_deadline = now + self.config.shutdown_grace_s
                    self.logger.info(
                        f"SHUTDOWN: waiting up to {self.config.shutdown_grace_s:.1f}s for "
                        f"{len(alive)} worker(s) to finish in-flight requests"
                    )
                elif kill_deadline is None and now >= grace_deadline:
                    self.logger.warning(f"SHUTDOWN_TERMINATE: stopping {len(alive)} busy exiftool session(s)")
                    for worker in alive:
                        worker.session.terminate()
                    kill_deadline = now + self.kill_timeout_s
                elif kill_deadline is not None and not killed and now >= kill_deadline:
                    self.logger.warning(f"SHUTDOWN_KILL: {len(alive)} exiftool session(s) ignored SIGTERM")
                    for worker in alive:
                        worker.session.kill()
                    killed = True

            alive[0].join(timeout=self.poll_interval_s)

    def run(self, roots: Iterable[Path]) -> RunResult:
        roots = [Path(root) for root in roots]
        tasks: "queue.Queue[Path]" = queue.Queue(maxsize=1)
        discovery_done = threading.Event()

        self.workers = self._start_workers(tasks, discovery_done)
        unregister = self.token.on_hard_cancel(self._kill_sessions)

        producer_error: Optional[JpegIdError] = None
        user_cancelled = False
        try:
            try:
                self.file_scanner.feed(roots, tasks, self.token, consumers_alive=self._any_worker_alive)
            except Cancelled:
                user_cancelled = True
                self.logger.info(f"DISCOVERY_CANCELLED: after {self.file_scanner.emitted} file(s)")
            except (DiscoveryError, NoWorkersError) as exc:
                producer_error = exc
                self.logger.error(f"DISCOVERY_FAILED: {exc}")
                self.token.cancel()
            except BaseException:
                self.token.cancel()
                raise
            finally:
                discovery_done.set()

            files_found = self.file_scanner.emitted
            self.logger.info(f"DISCOVERY_FINISHED: files={files_found} roots={len(roots)}")
            self.event_bus.publish(DiscoveryFinished(
                files_found=files_found,
                roots=roots,
                cancelled=user_cancelled,
            ))

            self._wait_for_workers()
        finally:
            unregister()

        user_cancelled = user_cancelled or (self.token.cancelled and producer_error is None)
        self.event_bus.publish(ProcessingFinished(cancelled=user_cancelled))

        failed = [worker for worker in self.workers if worker.error is not None]
        if producer_error is not None:
            if isinstance(producer_error, NoWorkersError) and failed:
                raise NoWorkersError(f"{producer_error} (last worker error: {failed[-1].error})") from failed[-1].error
            raise producer_error

        if failed:
            first = min(failed, key=lambda worker: worker.failed_at)
            raise JpegIdError(f"worker-{first.worker_id} failed: {first.error}") from first.error

        if not user_cancelled and not tasks.empty():
            raise NoWorkersError("All workers exited before the last file could be processed")

        self.logger.info(f"RUN_FINISHED: files={files_found} cancelled={user_cancelled}")
        return RunResult(files_found=files_found, cancelled=user_cancelled)
