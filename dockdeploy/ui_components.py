"""
dockdeploy - UI Components & Branding
Standardized headers and summary tables
"""

from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dockdeploy.models.results import StepOutcome, StepRecord

LOGO = "dockdeploy"

# Color scheme
SUCCESS_COLOR = "green"
ERROR_COLOR = "red"


def show_header(
    title: str,
    subtitle: Optional[str] = None,
    details: Optional[dict] = None,
    console: Optional[Console] = None,
):
    """
    Display a standardized dockdeploy command header.

    Args:
        title: Main title (e.g., "Deploy Application")
        subtitle: Optional subtitle line
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Deploy Application",
            details={"Target": "ubuntu@203.0.113.10", "App": "shop"}
        )
    """
    if console is None:
        console = Console()

    prefix = f" [bold color(214)]{LOGO}[/bold color(214)] [dim]›[/dim]"
    console.print(f"{prefix} [bold white]{escape(title)}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{escape(subtitle)}[/dim]")

    if details:
        for key, value in details.items():
            console.print(f"{prefix} {key}: [cyan]{escape(str(value))}[/cyan]")

    console.print()


def steps_table(records: Iterable[StepRecord]) -> Table:
    """Summary of the audit trail, one row per stage."""
    table = Table(title="Deployment Steps", title_justify="left", padding=(0, 1))
    table.add_column("Step", style="cyan", no_wrap=True)
    table.add_column("Outcome")
    table.add_column("Duration", justify="right", style="dim")

    for record in records:
        if record.outcome == StepOutcome.SUCCESS:
            outcome = f"[{SUCCESS_COLOR}]✓ success[/{SUCCESS_COLOR}]"
        else:
            outcome = f"[{ERROR_COLOR}]✗ {record.outcome.value}[/{ERROR_COLOR}]"
        table.add_row(record.name, outcome, f"{record.duration_seconds:.1f}s")

    return table
