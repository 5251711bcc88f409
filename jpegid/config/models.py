import re
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .patterns import DEFAULT_FILE_PATTERNS, compile_pattern


class RenameOptions(BaseModel):
    """The subset of the run configuration the decision engine reads."""

    model_config = ConfigDict(frozen=True)

    dry_run: bool = False
    replace_if_exists: bool = False


class RunConfig(BaseModel):
    roots: List[Path] = Field(default_factory=list)
    file_patterns: List[re.Pattern[str]] = Field(
        default_factory=lambda: [compile_pattern(p) for p in DEFAULT_FILE_PATTERNS]
    )
    workers: int = Field(default=8, gt=0)
    recursive: bool = False
    dry_run: bool = False
    replace_if_exists: bool = False
    verbose: bool = False
    exiftool: List[str] = Field(default_factory=lambda: ["exiftool"])
    shutdown_grace_s: float = Field(default=10.0, ge=0.0)
    log_path: Optional[str] = None

    @field_validator("file_patterns", mode="before")
    @classmethod
    def compile_file_patterns(cls, v):
        if v is None:
            return None
        if isinstance(v, (str, re.Pattern)):
            v = [v]
        compiled = []
        for pattern in v:
            if isinstance(pattern, re.Pattern):
                compiled.append(pattern)
                continue
            try:
                compiled.append(compile_pattern(str(pattern)))
            except re.error as exc:
                raise ValueError(f"Invalid file pattern {pattern!r}: {exc}") from exc
        return compiled

    @field_validator("file_patterns")
    @classmethod
    def require_patterns(cls, v: List[re.Pattern[str]]) -> List[re.Pattern[str]]:
        if not v:
            raise ValueError("At least one file pattern is required")
        return v

    @field_validator("exiftool", mode="before")
    @classmethod
    def split_exiftool_command(cls, v):
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("exiftool")
    @classmethod
    def require_exiftool(cls, v: List[str]) -> List[str]:
        if not v or not v[0]:
            raise ValueError("exiftool command must not be empty")
        return v

    @property
    def rename_options(self) -> RenameOptions:
        return RenameOptions(dry_run=self.dry_run, replace_if_exists=self.replace_if_exists)
