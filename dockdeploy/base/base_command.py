"""
Base Command Class

Abstract base for all dockdeploy CLI commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.markup import escape

from dockdeploy.constants import DEFAULT_LOG_DIR
from dockdeploy.exceptions import DeployError
from dockdeploy.logger import DeployLogger
from dockdeploy.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Error handling and exit codes
    """

    def __init__(
        self,
        verbose: bool = False,
        log_dir: Union[str, Path, None] = None,
        console: Optional[Console] = None,
    ):
        self.verbose = verbose
        self.log_dir = Path(log_dir or DEFAULT_LOG_DIR)
        self.console = console or Console()
        self.logger: Optional[DeployLogger] = None

    def init_logger(self, operation: str) -> DeployLogger:
        """
        Initialize the audit logger.

        Args:
            operation: Operation name written to the log header
        """
        self.logger = DeployLogger(
            operation, log_dir=self.log_dir, verbose=self.verbose, console_=self.console
        )
        return self.logger

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skip in verbose mode)."""
        if not self.verbose:
            show_header(
                title=title,
                subtitle=subtitle,
                details=details,
                console=self.console,
            )

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {escape(message)}[/green]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {escape(message)}[/red]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def print_log_location(self) -> None:
        if self.logger:
            self.console.print(f"\n[dim]Logs saved to:[/dim] {self.logger.log_path}\n")

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        Exits 1 on any DeployError (already reported by the stage that
        raised it), 130 on Ctrl-C.
        """
        try:
            self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            if self.logger:
                self.logger.log("Operation cancelled by user", "WARNING")
            self.print_log_location()
            raise SystemExit(130)
        except SystemExit:
            raise
        except DeployError as e:
            # Stages report their own failures; anything else is reported here
            if self.logger is None:
                self.console.print(f"\n[bold red]✗ {type(e).__name__}:[/bold red] {escape(e.message)}")
                if e.context:
                    self.console.print(f"  [color(208)]{escape(e.context)}[/color(208)]")
            elif not self.logger.has_errors:
                self.logger.log_error(f"{type(e).__name__}: {e.message}", context=e.context)
            self.print_log_location()
            raise SystemExit(1)
        except Exception as e:
            error_type = type(e).__name__
            self.console.print(f"\n[bold red]✗ {error_type}:[/bold red] {escape(str(e))}\n")
            if self.logger:
                self.logger.log_error(f"{error_type}: {e}")
            self.print_log_location()
            raise SystemExit(1)
        finally:
            if self.logger:
                self.logger.close()
