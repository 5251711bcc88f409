import threading
from typing import Optional, TextIO
from rich.console import Console, RenderableType


class OutputSink:
    """Line writer shared by all workers.

    Each ``write_line`` call is emitted as one unit under a lock; lines from
    different workers may interleave with each other but never mix.
    """

    def __init__(self, stream: Optional[TextIO] = None, stderr: bool = False):
        self.console = Console(
            file=stream,
            stderr=stderr,
            highlight=False,
            markup=False,
            emoji=False,
            soft_wrap=True,
        )
        self._lock = threading.Lock()

    def write_line(self, text: str) -> None:
        with self._lock:
            self.console.print(text)

    def write_renderable(self, renderable: RenderableType) -> None:
        """Prints a rich renderable (tables, markup text) as one unit."""
        with self._lock:
            self.console.print(renderable)
