import os
import signal
import threading
import typer
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from pydantic import ValidationError
from rich.text import Text

from jpegid.config.loader import load_config_data
from jpegid.config.models import RunConfig
from jpegid.config.input_dirs import build_root_lines, evaluate_roots, resolve_roots, validate_roots
from jpegid.domain.cancellation import CancellationToken
from jpegid.domain.errors import JpegIdError
from jpegid.infrastructure.event_bus import EventBus
from jpegid.infrastructure.file_scanner import FileScanner
from jpegid.infrastructure.logging import setup_logging
from jpegid.infrastructure.output import OutputSink
from jpegid.pipeline.orchestrator import Orchestrator
from jpegid.ui.manager import UIManager
from jpegid.ui.report import render_summary
from jpegid.ui.state import RunState

HARD_INTERRUPT_EXIT_CODE = 130

app = typer.Typer(help="jpegid - rename photos after the capture time stored in their metadata")


def install_signal_handlers(token: CancellationToken) -> Callable[[], None]:
    """First SIGINT/SIGTERM cancels softly, the second kills exiftool and exits.

    Returns a function restoring the previous handlers. Does nothing outside
    the main thread, where handlers cannot be installed.
    """
    if threading.current_thread() is not threading.main_thread():
        return lambda: None

    def _handler(signum, frame):
        if token.escalate():
            os._exit(HARD_INTERRUPT_EXIT_CODE)
        typer.secho(
            "\nInterrupt received - finishing in-flight files (press Ctrl+C again to force quit)",
            fg=typer.colors.YELLOW,
            err=True,
        )

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}

    def restore() -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return restore


def build_config(
    config_path: Optional[Path],
    overrides: Dict[str, Any],
    root_entries: Optional[List[str]],
) -> RunConfig:
    """Layers CLI overrides on the optional YAML config and resolves roots."""
    data = load_config_data(config_path) if config_path else {}
    data.update({key: value for key, value in overrides.items() if value is not None})

    entries = root_entries if root_entries else [str(entry) for entry in data.get("roots") or []]
    data["roots"] = validate_roots(resolve_roots(entries))
    return RunConfig(**data)


@app.command()
def rename(
    roots: Optional[List[Path]] = typer.Argument(
        None,
        help="Directories to scan (default: current directory)"
    ),
    file_patterns: Optional[List[str]] = typer.Option(
        None,
        "--file",
        "-f",
        help="File name regex, repeatable. A dot before a letter is literal (.jpg). Default: JPEG files"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Number of concurrent exiftool workers (default 8)"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Walk the roots recursively"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Print rename operations without executing them"),
    replace_if_exists: bool = typer.Option(
        False,
        "--replace-if-exists",
        help="If a file with the new name already exists, replace it"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    exiftool: Optional[str] = typer.Option(None, "--exiftool", help="exiftool executable (default: exiftool on PATH)"),
    shutdown_grace: Optional[float] = typer.Option(
        None,
        "--shutdown-grace",
        help="Seconds in-flight requests get after Ctrl+C before exiftool is stopped (default 10)"
    ),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Also write a log file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show progress messages and the root list"),
):
    """Rename image files to their capture time (YYYY-MM-DDTHHMMSS.sss+ZZZZ.ext)."""
    overrides: Dict[str, Any] = {
        "file_patterns": file_patterns or None,
        "workers": workers,
        "exiftool": exiftool,
        "shutdown_grace_s": shutdown_grace,
        "log_path": str(log_path) if log_path is not None else None,
    }
    # Flags only ever switch a config value on
    if recursive: overrides["recursive"] = True
    if dry_run: overrides["dry_run"] = True
    if replace_if_exists: overrides["replace_if_exists"] = True
    if verbose: overrides["verbose"] = True

    try:
        config = build_config(config_path, overrides, [str(root) for root in roots] if roots else None)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        typer.secho(f"Error: {location}: {first.get('msg')}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except (JpegIdError, FileNotFoundError, ValueError) as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    logger = setup_logging(verbose=config.verbose, log_path=Path(config.log_path) if config.log_path else None)
    logger.info(
        f"jpegid started: roots={len(config.roots)}, workers={config.workers}, recursive={config.recursive}, "
        f"dry_run={config.dry_run}, replace_if_exists={config.replace_if_exists}"
    )

    output = OutputSink()
    diagnostics = OutputSink(stderr=True)
    if config.verbose:
        lines = ["Roots:", *build_root_lines(evaluate_roots(config.roots))]
        diagnostics.write_renderable(Text.from_markup("\n".join(lines)))

    bus = EventBus()
    state = RunState()
    UIManager(bus, state)

    token = CancellationToken()
    orchestrator = Orchestrator(
        config=config,
        event_bus=bus,
        file_scanner=FileScanner(config.file_patterns, recursive=config.recursive),
        output=output,
        diagnostics=diagnostics,
        token=token,
    )

    restore_signals = install_signal_handlers(token)
    try:
        result = orchestrator.run(config.roots)
    except JpegIdError as exc:
        logger.debug(f"Run failed: {exc!r}")
        if state.finished:
            diagnostics.write_renderable(render_summary(state))
        typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        logger.exception(f"Fatal error: {exc}")
        typer.secho(f"Fatal Error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    finally:
        restore_signals()

    diagnostics.write_renderable(render_summary(state))
    if result.cancelled:
        typer.secho("Stopped by user (Ctrl+C)", fg=typer.colors.YELLOW, err=True)


if __name__ == "__main__":
    app()
