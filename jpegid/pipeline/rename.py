"""Capture-time based rename decisions.

``decide`` turns an ExifTool record into a target name and an action without
touching the filesystem beyond an existence check; ``apply_decision`` carries
the action out and reports it.
"""

import errno
import logging
import os
import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional, Tuple

from jpegid.config.models import RenameOptions
from jpegid.domain.errors import NoTimestampError, RenameExecutionError, TimestampParseError
from jpegid.domain.models import MetadataRecord, RenameAction, RenameDecision
from jpegid.infrastructure.output import OutputSink

logger = logging.getLogger(__name__)

SUBSEC_FORMAT = "%Y:%m:%d %H:%M:%S.%f%z"
CREATE_DATE_FORMAT = "%Y:%m:%d %H:%M:%S%z"
CANONICAL_FORMAT = "%Y-%m-%dT%H%M%S"
MAX_JITTER_MS = 999
_NO_HARDLINK_ERRNOS = {errno.EPERM, errno.EOPNOTSUPP, errno.ENOTSUP}


def resolve_capture_time(record: MetadataRecord, rng: Optional[random.Random] = None) -> Tuple[datetime, bool]:
    """Returns the capture instant and whether sub-second jitter was added.

    SubSecDateTimeOriginal wins; CreateDate + TimeZone is the fallback and
    gets 0-999 ms of jitter so photos shot in the same second keep distinct
    names.
    """
    if record.sub_sec_date_time_original:
        value = record.sub_sec_date_time_original
        try:
            return datetime.strptime(value, SUBSEC_FORMAT), False
        except ValueError as exc:
            raise TimestampParseError(f"Cannot parse SubSecDateTimeOriginal {value!r}: {exc}") from exc

    if record.create_date:
        value = record.create_date + record.time_zone
        try:
            captured = datetime.strptime(value, CREATE_DATE_FORMAT)
        except ValueError as exc:
            raise TimestampParseError(f"Cannot parse CreateDate+TimeZone {value!r}: {exc}") from exc
        jitter_ms = (rng or random).randint(0, MAX_JITTER_MS)
        return captured + timedelta(milliseconds=jitter_ms), True

    raise NoTimestampError()


def format_canonical_name(captured_at: datetime, extension: str = "") -> str:
    """``2023-05-01T100000.250+0000`` plus the extension; milliseconds are truncated."""
    millis = captured_at.microsecond // 1000
    return f"{captured_at.strftime(CANONICAL_FORMAT)}.{millis:03d}{captured_at.strftime('%z')}{extension}"


def parse_canonical_name(name: str) -> Optional[datetime]:
    """Inverse of format_canonical_name for an existing file name, or None."""
    for candidate in (Path(name).stem, name):
        try:
            return datetime.strptime(candidate, f"{CANONICAL_FORMAT}.%f%z")
        except ValueError:
            continue
    return None


def _same_second(existing: Optional[datetime], captured_at: datetime) -> bool:
    if existing is None:
        return False
    return (
        existing.utcoffset() == captured_at.utcoffset()
        and existing.replace(microsecond=0) == captured_at.replace(microsecond=0)
    )


def decide(
    source: Path,
    record: MetadataRecord,
    options: RenameOptions,
    rng: Optional[random.Random] = None,
    exists: Callable[[Path], bool] = os.path.lexists,
) -> RenameDecision:
    source = Path(source)
    captured_at, jittered = resolve_capture_time(record, rng)
    target = source.with_name(format_canonical_name(captured_at, source.suffix))

    if target == source:
        action = RenameAction.UNCHANGED
    elif jittered and _same_second(parse_canonical_name(source.name), captured_at):
        # Already renamed on an earlier run; only the random milliseconds differ
        target = source
        action = RenameAction.UNCHANGED
    elif options.dry_run:
        action = RenameAction.REPORT
    elif options.replace_if_exists:
        action = RenameAction.REPLACE
    elif exists(target):
        action = RenameAction.SKIP_EXISTS
    else:
        action = RenameAction.RENAME

    return RenameDecision(
        source=source,
        target=target,
        action=action,
        captured_at=captured_at,
        record=record,
    )


def _move_no_replace(source: Path, target: Path) -> None:
    """Moves source to target; FileExistsError if target appeared meanwhile."""
    try:
        os.link(source, target)
    except FileExistsError:
        raise
    except OSError as exc:
        if exc.errno not in _NO_HARDLINK_ERRNOS:
            raise
        # Filesystem without hard links
        if os.path.lexists(target):
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(target)) from exc
        os.rename(source, target)
        return
    os.unlink(source)


def apply_decision(decision: RenameDecision, output: OutputSink) -> RenameDecision:
    """Executes or reports a decision and returns the action actually taken.

    A plain rename never overwrites: a target created after ``decide`` turns
    it into SKIP_EXISTS. Raises RenameExecutionError if the move fails.
    """
    source, target = decision.source, decision.target

    if decision.action == RenameAction.REPORT:
        output.write_line(f"{source} => {target} {decision.record.to_json()}")
        return decision

    if decision.action in (RenameAction.RENAME, RenameAction.REPLACE):
        try:
            if decision.action == RenameAction.REPLACE:
                os.replace(source, target)
            else:
                _move_no_replace(source, target)
        except FileExistsError:
            decision = decision.model_copy(update={"action": RenameAction.SKIP_EXISTS})
        except OSError as exc:
            raise RenameExecutionError(f"Cannot rename {source} to {target}: {exc}") from exc
        else:
            output.write_line(f"{source} => {target}")
            logger.info(f"RENAMED: {source} -> {target.name} (action={decision.action.value})")
            return decision

    if decision.action == RenameAction.SKIP_EXISTS:
        logger.warning(
            f"SKIP_EXISTS: {source} (target {target} already exists, use --replace-if-exists to replace it)"
        )
        return decision

    logger.info(f"UNCHANGED: {source} already carries its capture-time name")
    return decision
