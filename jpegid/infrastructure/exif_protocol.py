"""ExifTool ``-stay_open`` line protocol.

Requests are newline-separated argument lists terminated by ``-execute``;
each response is whatever ExifTool prints followed by the ``{ready}`` line.
Nothing here does I/O.
"""

import json
import os
from pathlib import Path
from typing import List, Optional, Union

from jpegid.domain.errors import ProtocolError, ResponseDecodeError
from jpegid.domain.models import MetadataRecord

READY_SENTINEL = b"{ready}\n"


def build_startup_args() -> List[str]:
    """Arguments that keep ExifTool alive reading requests from stdin."""
    return ["-stay_open", "True", "-@", "-"]


def build_request(path: Union[str, Path]) -> bytes:
    """JSON query for a single file."""
    encoded = os.fsencode(path)
    if b"\n" in encoded or b"\r" in encoded:
        raise ProtocolError(f"Path cannot be sent to exiftool (contains a line break): {path!r}")
    return b"-json\n" + encoded + b"\n-execute\n"


def build_shutdown() -> bytes:
    return b"-stay_open\nFalse\n"


class ResponseAccumulator:
    """Collects response lines until the ready sentinel."""

    def __init__(self):
        self._buffer = bytearray()

    def reset(self) -> None:
        self._buffer.clear()

    def feed(self, line: bytes) -> Optional[bytes]:
        """Returns the completed payload on the sentinel line, else None."""
        if line == READY_SENTINEL:
            payload = bytes(self._buffer)
            self._buffer.clear()
            return payload
        self._buffer.extend(line)
        return None


def decode_response(payload: bytes) -> MetadataRecord:
    """Parses a ``-json`` response for exactly one file."""
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise ResponseDecodeError(f"Invalid exiftool JSON ({exc}): {payload[:200]!r}") from exc

    if not isinstance(data, list) or len(data) != 1:
        count = len(data) if isinstance(data, list) else type(data).__name__
        raise ResponseDecodeError(f"Expected a JSON array with one element, got {count}")
    if not isinstance(data[0], dict):
        raise ResponseDecodeError(f"Expected a JSON object, got {type(data[0]).__name__}")
    return MetadataRecord.model_validate(data[0])
