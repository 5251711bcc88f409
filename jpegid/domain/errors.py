"""Error taxonomy for the rename pipeline.

Configuration and walk errors abort the run. Protocol errors are scoped to a
single ExifTool session, per-file errors to a single file. ``Cancelled`` is
not a failure and never changes the exit status.
"""


class JpegIdError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(JpegIdError):
    """Invalid run configuration (bad root, bad pattern, ...)."""


class DiscoveryError(JpegIdError):
    """Directory walk failed; aborts the run."""


class NoWorkersError(JpegIdError):
    """Every worker exited while discovery still had files to hand out."""


class Cancelled(JpegIdError):
    """Raised when the run was cancelled by the user."""


class SessionStartError(JpegIdError):
    """ExifTool could not be launched."""


class ProtocolError(JpegIdError):
    """ExifTool stay-open protocol violation."""


class SessionClosedError(ProtocolError):
    """ExifTool stream ended before the ready sentinel; session is unusable."""


class ResponseDecodeError(ProtocolError):
    """Response payload for one request was not a single-element JSON array."""


class RenameError(JpegIdError):
    """Per-file failure computing the target name."""


class NoTimestampError(RenameError):
    def __init__(self, message: str = "no usable timestamp"):
        super().__init__(message)


class TimestampParseError(RenameError):
    """A timestamp field was present but not in the expected format."""


class RenameExecutionError(JpegIdError):
    """The filesystem move failed for one file."""
