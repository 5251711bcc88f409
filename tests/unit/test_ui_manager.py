from datetime import datetime, timezone
from pathlib import Path

from jpegid.infrastructure.event_bus import EventBus
from jpegid.ui.state import RunState
from jpegid.ui.manager import UIManager
from jpegid.domain.events import (
    DiscoveryFinished,
    FileFailed,
    FileRenamed,
    FileReported,
    FileSkipped,
    FileUnchanged,
    ProcessingFinished,
    WorkerFailed,
)
from jpegid.domain.models import MetadataRecord, RenameAction, RenameDecision


def make_decision(action):
    return RenameDecision(
        source=Path("a.jpg"),
        target=Path("2023-05-01T100000.250+0000.jpg"),
        action=action,
        captured_at=datetime(2023, 5, 1, 10, tzinfo=timezone.utc),
        record=MetadataRecord(),
    )


def test_ui_manager_counts_file_outcomes():
    bus = EventBus()
    state = RunState()
    UIManager(bus, state)

    bus.publish(FileRenamed(decision=make_decision(RenameAction.RENAME)))
    bus.publish(FileRenamed(decision=make_decision(RenameAction.REPLACE)))
    bus.publish(FileReported(decision=make_decision(RenameAction.REPORT)))
    bus.publish(FileSkipped(decision=make_decision(RenameAction.SKIP_EXISTS)))
    bus.publish(FileUnchanged(decision=make_decision(RenameAction.UNCHANGED)))
    bus.publish(FileFailed(path=Path("b.jpg"), error_message="no usable timestamp"))

    assert state.renamed_count == 2
    assert state.reported_count == 1
    assert state.skipped_count == 1
    assert state.unchanged_count == 1
    assert state.failed_count == 1
    assert list(state.recent_failures) == [(Path("b.jpg"), "no usable timestamp")]
    assert state.processed_count == 6


def test_ui_manager_tracks_worker_failures():
    bus = EventBus()
    state = RunState()
    UIManager(bus, state)

    bus.publish(WorkerFailed(worker_id=3, error_message="exiftool returned EOF prematurely"))

    assert state.failed_workers == 1


def test_ui_manager_run_lifecycle(tmp_path):
    bus = EventBus()
    state = RunState()
    UIManager(bus, state)

    bus.publish(DiscoveryFinished(files_found=12, roots=[tmp_path], cancelled=False))
    assert state.files_found == 12
    assert state.roots == [tmp_path]
    assert state.finished is False

    bus.publish(ProcessingFinished(cancelled=True))
    assert state.finished is True
    assert state.cancelled is True
    assert state.finish_time is not None
