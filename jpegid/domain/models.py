from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator


class WorkerState(str, Enum):
    STARTING = "STARTING"
    READY = "READY"
    AWAITING_TASK = "AWAITING_TASK"
    PROCESSING = "PROCESSING"
    DRAINING = "DRAINING"
    CLOSED = "CLOSED"


class RenameAction(str, Enum):
    RENAME = "rename"
    REPLACE = "replace"  # rename over an existing target
    SKIP_EXISTS = "skip_exists"
    REPORT = "report"  # dry-run
    UNCHANGED = "unchanged"  # target equals source


class MetadataRecord(BaseModel):
    """The ExifTool tags the renamer cares about, keyed by their tag names."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_size: str = Field(default="", alias="FileSize")
    sub_sec_date_time_original: str = Field(default="", alias="SubSecDateTimeOriginal")
    create_date: str = Field(default="", alias="CreateDate")
    time_zone: str = Field(default="", alias="TimeZone")

    @field_validator("*", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        # ExifTool emits numbers unquoted for some tags
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class RenameDecision(BaseModel):
    source: Path
    target: Path
    action: RenameAction
    captured_at: datetime
    record: MetadataRecord


class RunResult(BaseModel):
    files_found: int = 0
    cancelled: bool = False
