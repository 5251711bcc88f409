import logging
import sys
from pathlib import Path
from typing import Optional


def setup_logging(verbose: bool = False, log_path: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging configuration for jpegid.

    Diagnostics go to stderr: per-file problems and skips always, progress
    (renames, session lifecycle) only in verbose mode. An optional log file
    receives everything at INFO (DEBUG when verbose) with timestamps.

    Args:
        verbose: If True, show INFO messages on stderr and DEBUG in the log file
        log_path: Optional path to a log file
    """
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    stream_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    handlers = [stream_handler]

    if log_path:
        log_file = Path(log_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    logger = logging.getLogger("jpegid")
    logger.debug(f"Logging initialized: log_file={log_path} (verbose={'ON' if verbose else 'OFF'})")

    return logger
