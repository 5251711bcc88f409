"""Domain events for the rename pipeline.

Workers and the orchestrator publish these through the EventBus so the run
summary (see `ui/manager.py`) stays decoupled from the pipeline threads.
"""

from pathlib import Path
from typing import List
from pydantic import BaseModel, Field
from .models import RenameDecision


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class DecisionEvent(Event):
    """Base class for events carrying a computed rename decision."""

    decision: RenameDecision


class FileRenamed(DecisionEvent):
    """Emitted after a successful rename or replace."""

    pass


class FileReported(DecisionEvent):
    """Emitted when a dry-run decision was written to the output sink."""

    pass


class FileSkipped(DecisionEvent):
    """Emitted when the target already exists and replacing is disabled."""

    pass


class FileUnchanged(DecisionEvent):
    """Emitted when the file already carries its canonical name."""

    pass


class FileFailed(Event):
    """Emitted for any recoverable per-file error."""

    path: Path
    error_message: str


class WorkerFailed(Event):
    """Emitted when a worker's ExifTool session died and the worker exited."""

    worker_id: int
    error_message: str


class DiscoveryFinished(Event):
    """Emitted after the producer has walked every root."""

    files_found: int
    roots: List[Path] = Field(default_factory=list)
    cancelled: bool = False


class ProcessingFinished(Event):
    """Emitted when every worker has closed."""

    cancelled: bool = False
