import logging
from datetime import datetime
from jpegid.infrastructure.event_bus import EventBus
from jpegid.ui.state import RunState
from jpegid.domain.events import (
    DiscoveryFinished, FileFailed, FileRenamed, FileReported,
    FileSkipped, FileUnchanged, ProcessingFinished, WorkerFailed,
)


class UIManager:
    """Subscribes to EventBus and updates RunState."""

    def __init__(self, bus: EventBus, state: RunState):
        self.bus = bus
        self.state = state
        self.logger = logging.getLogger(__name__)
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(FileRenamed, self.on_file_renamed)
        self.bus.subscribe(FileReported, self.on_file_reported)
        self.bus.subscribe(FileSkipped, self.on_file_skipped)
        self.bus.subscribe(FileUnchanged, self.on_file_unchanged)
        self.bus.subscribe(FileFailed, self.on_file_failed)
        self.bus.subscribe(WorkerFailed, self.on_worker_failed)
        self.bus.subscribe(DiscoveryFinished, self.on_discovery_finished)
        self.bus.subscribe(ProcessingFinished, self.on_processing_finished)

    def on_file_renamed(self, event: FileRenamed):
        self.state.increment("renamed_count")

    def on_file_reported(self, event: FileReported):
        self.state.increment("reported_count")

    def on_file_skipped(self, event: FileSkipped):
        self.state.increment("skipped_count")

    def on_file_unchanged(self, event: FileUnchanged):
        self.state.increment("unchanged_count")

    def on_file_failed(self, event: FileFailed):
        self.state.add_failure(event.path, event.error_message)

    def on_worker_failed(self, event: WorkerFailed):
        self.state.increment("failed_workers")

    def on_discovery_finished(self, event: DiscoveryFinished):
        self.logger.debug(f"UI: discovery finished files={event.files_found} cancelled={event.cancelled}")
        with self.state._lock:
            self.state.files_found = event.files_found
            self.state.roots = list(event.roots)

    def on_processing_finished(self, event: ProcessingFinished):
        with self.state._lock:
            self.state.finished = True
            self.state.cancelled = event.cancelled
            self.state.finish_time = datetime.now()
