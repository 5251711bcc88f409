from rich.table import Table
from rich.text import Text

from jpegid.ui.state import RunState


def render_summary(state: RunState) -> Table:
    """Builds the end-of-run summary table."""
    title = "jpegid - cancelled" if state.cancelled else "jpegid"
    table = Table(title=title, show_header=False, box=None, padding=(0, 2))
    table.add_column("label", style="bold")
    table.add_column("value", justify="right")

    rows = [
        ("Roots", str(len(state.roots))),
        ("Files matched", str(state.files_found)),
        ("Processed", str(state.processed_count)),
        ("Renamed", str(state.renamed_count)),
        ("Reported (dry run)", str(state.reported_count)),
        ("Skipped (target exists)", str(state.skipped_count)),
        ("Already named", str(state.unchanged_count)),
        ("Failed", str(state.failed_count)),
        ("Elapsed", f"{state.elapsed_seconds:.1f}s"),
    ]
    if state.failed_workers:
        rows.insert(-1, ("Workers lost", str(state.failed_workers)))

    for label, value in rows:
        style = "red" if label in ("Failed", "Workers lost") and value != "0" else None
        table.add_row(label, Text(value, style=style) if style else value)

    for path, message in state.recent_failures:
        table.add_row(Text(path.name, style="red"), Text(message, style="dim"))
    return table
