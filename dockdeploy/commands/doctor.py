"""Doctor command - local prerequisites check"""

import shutil
from pathlib import Path
from typing import Optional

import click
from rich.table import Table

from dockdeploy.base import BaseCommand
from dockdeploy.constants import REQUIRED_TOOLS


class DoctorCommand(BaseCommand):
    """Checks that the local machine can run a deployment."""

    def __init__(self, key_path: Optional[str] = None, verbose: bool = False, console=None):
        super().__init__(verbose=verbose, console=console)
        self.key_path = key_path
        self.failures = 0
        self.table = Table(title="Local Health Report", title_justify="left", padding=(0, 1))
        self.table.add_column("Check", style="cyan", no_wrap=True)
        self.table.add_column("Status")
        self.table.add_column("Details", style="dim")

    def check_tool(self, tool_name: str) -> Optional[str]:
        """Return the tool's path, or None when it is not on PATH."""
        return shutil.which(tool_name)

    def check_tools(self) -> None:
        for tool in REQUIRED_TOOLS:
            path = self.check_tool(tool)
            if path:
                self.table.add_row(f"✅ {tool}", "[green]Installed[/green]", path)
            else:
                self.failures += 1
                self.table.add_row(f"❌ {tool}", "[red]Missing[/red]", f"Install {tool}")

    def check_key(self) -> None:
        if not self.key_path:
            return
        key = Path(self.key_path).expanduser()
        if key.is_file():
            self.table.add_row("✅ SSH key", "[green]Found[/green]", str(key))
        else:
            self.failures += 1
            self.table.add_row("❌ SSH key", "[red]Not found[/red]", str(key))

    def execute(self) -> None:
        """Execute doctor command."""
        self.show_header(title="Doctor", subtitle="Checking local prerequisites")
        self.check_tools()
        self.check_key()
        self.console.print(self.table)

        if self.failures:
            self.print_error(f"{self.failures} check(s) failed")
            raise SystemExit(1)
        self.print_success("Ready to deploy")


@click.command()
@click.option("--key", "key_path", help="SSH private key to check")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
def doctor(key_path, verbose):
    """Check that ssh, scp and git are installed locally"""
    cmd = DoctorCommand(key_path=key_path, verbose=verbose)
    cmd.run()
