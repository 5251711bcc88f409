import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from jpegid.domain.errors import ConfigError

STATUS_OK = "✓"
STATUS_MISSING = "✗"
STATUS_NOT_DIR = "≠"
STATUS_NO_ACCESS = "⚡"


def _strip_wrapping_quotes(value: str) -> str:
    trimmed = value.strip()
    if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in ('"', "'"):
        return trimmed[1:-1]
    return trimmed


def dedupe_preserve_order(entries: Iterable[Path]) -> List[Path]:
    seen = set()
    deduped: List[Path] = []
    for entry in entries:
        if entry not in seen:
            seen.add(entry)
            deduped.append(entry)
    return deduped


def resolve_roots(entries: Iterable[str], cwd: Optional[Path] = None) -> List[Path]:
    """Turns CLI/config root entries into absolute, de-duplicated paths.

    An empty entry list means the current working directory.
    """
    base = Path(cwd) if cwd is not None else Path.cwd()
    roots: List[Path] = []
    for entry in entries:
        if entry is None:
            continue
        cleaned = _strip_wrapping_quotes(str(entry))
        if not cleaned:
            continue
        path = Path(cleaned).expanduser()
        if not path.is_absolute():
            path = base / path
        roots.append(Path(os.path.normpath(path)))
    if not roots:
        roots.append(base)
    return dedupe_preserve_order(roots)


def _has_read_access(path: Path) -> bool:
    return os.access(path, os.R_OK | os.X_OK)


def evaluate_roots(roots: List[Path]) -> List[Tuple[str, Path]]:
    status_entries: List[Tuple[str, Path]] = []
    for path in roots:
        if not path.exists():
            status_entries.append((STATUS_MISSING, path))
        elif not path.is_dir():
            status_entries.append((STATUS_NOT_DIR, path))
        elif not _has_read_access(path):
            status_entries.append((STATUS_NO_ACCESS, path))
        else:
            status_entries.append((STATUS_OK, path))
    return status_entries


def validate_roots(roots: List[Path]) -> List[Path]:
    """Raises ConfigError for the first root that cannot be walked."""
    messages = {
        STATUS_MISSING: "does not exist",
        STATUS_NOT_DIR: "is not a directory",
        STATUS_NO_ACCESS: "is not readable",
    }
    for status, path in evaluate_roots(roots):
        if status != STATUS_OK:
            raise ConfigError(f"Root directory {path} {messages[status]}")
    return roots


def render_status_icon(status: str) -> str:
    style = "green" if status == STATUS_OK else "red"
    return f"[{style}]{status}[/]"


def build_root_lines(status_entries: List[Tuple[str, Path]]) -> List[str]:
    return [
        f"  {render_status_icon(status)} {idx + 1}. {path}"
        for idx, (status, path) in enumerate(status_entries)
    ]
