import logging
import os
import signal
import subprocess
import threading
from pathlib import Path
from typing import List, Optional, Sequence, Union

from jpegid.domain.errors import SessionClosedError, SessionStartError
from jpegid.domain.models import MetadataRecord
from jpegid.infrastructure.exif_protocol import (
    ResponseAccumulator,
    build_request,
    build_shutdown,
    build_startup_args,
    decode_response,
)
from jpegid.infrastructure.output import OutputSink

_POSIX = os.name == "posix"


class ExifToolSession:
    """One long-lived ``exiftool -stay_open`` process owned by a single worker.

    The process runs in its own process group so it can be signalled apart from
    the parent. Stderr is drained on a background thread for the whole
    lifetime of the session; an undrained stderr pipe can stall ExifTool.

    Only one request is in flight at a time. A request whose stdout ends before
    the ``{ready}`` line leaves the session broken; it must be closed, not reused.
    """

    def __init__(
        self,
        command: Sequence[str] = ("exiftool",),
        diagnostics: Optional[OutputSink] = None,
        name: str = "exiftool",
        wait_timeout_s: float = 3.0,
    ):
        self.command: List[str] = list(command)
        self.diagnostics = diagnostics
        self.name = name
        self.wait_timeout_s = wait_timeout_s
        self.logger = logging.getLogger(__name__)

        self._process: Optional[subprocess.Popen] = None
        self._stderr_thread: Optional[threading.Thread] = None
        self._accumulator = ResponseAccumulator()
        self._request_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._closed = False
        self._broken = False

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    def __enter__(self) -> "ExifToolSession":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def open(self) -> "ExifToolSession":
        """Launches ExifTool and starts draining its stderr."""
        if self._process is not None:
            raise RuntimeError(f"{self.name}: session already opened")

        cmd = [*self.command, *build_startup_args()]
        try:
            self._process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=_POSIX,
            )
        except OSError as exc:
            raise SessionStartError(f"{' '.join(cmd)}: {exc}") from exc

        self._stderr_thread = threading.Thread(
            target=self._drain_stderr,
            name=f"{self.name}-stderr",
            daemon=True,
        )
        self._stderr_thread.start()
        self.logger.debug(f"EXIFTOOL_START: {self.name} pid={self._process.pid}")
        return self

    def _drain_stderr(self):
        stream = self._process.stderr
        if stream is None:
            return
        for raw in iter(stream.readline, b""):
            text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if self.diagnostics is not None:
                self.diagnostics.write_line(text)
            else:
                self.logger.warning(f"EXIFTOOL_STDERR: {self.name}: {text}")

    def request(self, path: Union[str, Path]) -> MetadataRecord:
        """Queries metadata for one file and blocks until ExifTool answers."""
        request = build_request(path)
        with self._request_lock:
            if self._process is None or self._closed or self._broken:
                raise SessionClosedError(f"{self.name}: session is not open")
            try:
                self._process.stdin.write(request)
                self._process.stdin.flush()
            except (OSError, ValueError) as exc:
                self._broken = True
                raise SessionClosedError(f"{self.name}: cannot write request: {exc}") from exc
            payload = self._read_response()
        return decode_response(payload)

    def _read_response(self) -> bytes:
        self._accumulator.reset()
        while True:
            try:
                line = self._process.stdout.readline()
            except (OSError, ValueError) as exc:
                self._broken = True
                raise SessionClosedError(f"{self.name}: cannot read response: {exc}") from exc
            if not line:
                self._broken = True
                raise SessionClosedError(f"{self.name}: exiftool returned EOF prematurely")
            payload = self._accumulator.feed(line)
            if payload is not None:
                return payload

    def _signal_group(self, force: bool = False) -> None:
        process = self._process
        if process is None:
            return
        if not _POSIX:
            if process.poll() is None:
                if force:
                    process.kill()
                else:
                    process.terminate()
            return
        sig = signal.SIGKILL if force else signal.SIGTERM
        try:
            os.killpg(process.pid, sig)
        except ProcessLookupError:
            self.logger.debug(f"EXIFTOOL_GONE: {self.name} pid={process.pid} (group already exited)")
        except PermissionError as exc:
            self.logger.warning(f"EXIFTOOL_SIGNAL_FAILED: {self.name} pid={process.pid}: {exc}")

    def terminate(self) -> None:
        """Sends SIGTERM to the process group; a blocked request then sees EOF."""
        self._signal_group(force=False)

    def kill(self) -> None:
        """Sends SIGKILL to the process group. Used on hard interrupt."""
        self._signal_group(force=True)

    def close(self) -> None:
        """Asks ExifTool to exit, then stops its process group regardless.

        Safe to call more than once and on a session that never opened.
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        process = self._process
        if process is None:
            return

        try:
            process.stdin.write(build_shutdown())
            process.stdin.flush()
        except (OSError, ValueError) as exc:
            self.logger.warning(f"EXIFTOOL_SHUTDOWN_FAILED: {self.name} pid={process.pid}: {exc}")
        try:
            process.stdin.close()
        except OSError as exc:
            self.logger.debug(f"EXIFTOOL_STDIN_CLOSE_FAILED: {self.name}: {exc}")

        try:
            process.wait(timeout=self.wait_timeout_s)
        except subprocess.TimeoutExpired:
            self.logger.info(f"EXIFTOOL_TERM: {self.name} pid={process.pid} ignored shutdown request")

        # The group may outlive its leader
        self._signal_group(force=False)
        if process.returncode is None:
            try:
                process.wait(timeout=self.wait_timeout_s)
            except subprocess.TimeoutExpired:
                self.logger.warning(f"EXIFTOOL_KILL: {self.name} pid={process.pid} did not exit after SIGTERM")
                self._signal_group(force=True)
                process.wait()

        if self._stderr_thread is not None:
            self._stderr_thread.join(timeout=1.0)
        if process.stdout is not None:
            process.stdout.close()
        if process.stderr is not None and not (self._stderr_thread and self._stderr_thread.is_alive()):
            process.stderr.close()
        self.logger.debug(f"EXIFTOOL_STOP: {self.name} pid={process.pid} returncode={process.returncode}")
