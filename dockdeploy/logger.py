"""
Logging system for dockdeploy
Appends a timestamped audit trail to a daily log file with clean console output
"""

import re
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO, Union

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.padding import Padding
from rich.spinner import Spinner
from rich.text import Text

from dockdeploy.constants import (
    DEFAULT_LOG_DIR,
    LOG_DATETIME_FORMAT,
    LOG_FILE_FORMAT,
    MASK,
    SENSITIVE_KEYWORDS,
)

console = Console()

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")

# FOO_TOKEN=value style assignments
SENSITIVE_ASSIGNMENT = re.compile(
    r"\b([A-Z0-9_]*(?:%s)[A-Z0-9_]*)=(\S+)" % "|".join(SENSITIVE_KEYWORDS)
)


class DeployLogger:
    """
    Manages the audit log for deployment operations
    - Appends one timestamped line per event to logs/deploy_YYYYMMDD.log
    - Shows clean progress UI in console (unless verbose)
    - Masks registered secrets everywhere
    """

    def __init__(
        self,
        operation: str,
        log_dir: Union[str, Path] = DEFAULT_LOG_DIR,
        verbose: bool = False,
        console_: Optional[Console] = None,
    ):
        """
        Initialize logger

        Args:
            operation: Operation name (e.g., 'deploy', 'cleanup')
            log_dir: Directory holding the daily log files
            verbose: If True, show all output in console
            console_: Console to print to (defaults to the module console)
        """
        self.operation = operation
        self.verbose = verbose
        self.console = console_ or console
        self.log_file: Optional[TextIO] = None
        self.current_step = ""
        self.has_errors = False
        self._secrets: list[str] = []

        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        self.log_path = log_dir / datetime.now().strftime(LOG_FILE_FORMAT)

        # Append mode: the audit log outlives the session
        self.log_file = open(self.log_path, "a", buffering=1)

        self._write_log_header()

    def _write_log_header(self):
        """Write session header"""
        self.log(f"{'=' * 20} {self.operation} started {'=' * 20}")

    def register_secret(self, secret: Optional[str]) -> None:
        """Mask this value in every line written from now on."""
        if secret and secret not in self._secrets:
            self._secrets.append(secret)

    def mask(self, text: str) -> str:
        """Replace registered secrets with a mask."""
        for secret in self._secrets:
            text = text.replace(secret, MASK)
        return SENSITIVE_ASSIGNMENT.sub(lambda m: f"{m.group(1)}={MASK}", text)

    def _write(self, line: str) -> None:
        if self.log_file:
            self.log_file.write(line)
            self.log_file.flush()

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, DEBUG)
        """
        message = self.mask(message)
        timestamp = datetime.now().strftime(LOG_DATETIME_FORMAT)
        self._write(f"[{timestamp}] [{level}] {message}\n")

        if self.verbose:
            text = escape(message)
            if level == "ERROR":
                self.console.print(f"[red]{text}[/red]")
            elif level == "WARNING":
                self.console.print(f"[yellow]{text}[/yellow]")
            elif level == "DEBUG":
                self.console.print(f"[dim]{text}[/dim]")
            else:
                self.console.print(text)

    def log_command(self, command: str):
        """Log a command being executed"""
        self.log(f"Executing: {command}", "DEBUG")

    def log_output(self, output: str, stream: str = "stdout"):
        """
        Log command output

        Always written to the log file; shown in console only if verbose.

        Args:
            output: Command output (single line or multiline)
            stream: Stream name (stdout, stderr)
        """
        if not output:
            return

        clean_output = self.mask(ANSI_ESCAPE.sub("", output))
        timestamp = datetime.now().strftime(LOG_DATETIME_FORMAT)
        for line in clean_output.splitlines():
            self._write(f"[{timestamp}] [OUTPUT] [{stream}] {line}\n")

        if self.verbose:
            self.console.print(escape(clean_output))

    def log_error(self, error: str, context: Optional[str] = None):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., command that failed)
        """
        self.has_errors = True
        error = self.mask(error)

        self.log(f"ERROR: {error}", "ERROR")
        if context:
            self.log(f"Context: {context}", "ERROR")

        if not self.verbose:
            self.console.print()

        self.console.print(f"[bold red]✗ {escape(error)}[/bold red]")
        if context:
            self.console.print(f"  [color(208)]{escape(self.mask(context))}[/color(208)]")

    def step(self, step_name: str):
        """
        Start a new step

        Args:
            step_name: Name of the step
        """
        if self.current_step and not self.verbose:
            self.console.print()

        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")

        if not self.verbose:
            self.console.print(f"[color(214)]▶[/color(214)] [white]{escape(step_name)}[/white]")

    def success(self, message: str):
        """Log a success message"""
        self.log(f"SUCCESS: {message}", "INFO")

        if not self.verbose:
            self.console.print(f"  [dim]✓ {escape(self.mask(message))}[/dim]")

    def warning(self, message: str):
        """Log a warning message"""
        self.log(message, "WARNING")

        if not self.verbose:
            self.console.print(f"  [yellow]⚠[/yellow] [dim]{escape(self.mask(message))}[/dim]")

    def close(self):
        """Close log file"""
        if self.log_file:
            status = "FAILED" if self.has_errors else "SUCCESS"
            self.log(f"{'=' * 20} {self.operation} finished: {status} {'=' * 20}")
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        """Context manager exit"""
        if exc_type is not None and exc_type not in (SystemExit, KeyboardInterrupt):
            self.log_error(
                str(exc_val) if exc_val else "Operation failed",
                context=f"{exc_type.__name__}",
            )
        self.close()
        return False  # Don't suppress exceptions


def run_with_progress(
    logger: DeployLogger,
    command: list[str],
    description: str,
    cwd: Optional[Path] = None,
    env: Optional[dict] = None,
    timeout: Optional[int] = None,
) -> tuple[int, str, str]:
    """
    Run a local command with a progress indicator

    Args:
        logger: DeployLogger instance
        command: Command argv
        description: Description for progress indicator
        cwd: Working directory
        env: Environment for the child process
        timeout: Seconds before the command is abandoned

    Returns:
        Tuple of (return_code, stdout, stderr)
    """
    logger.log_command(" ".join(command))

    def _run() -> subprocess.CompletedProcess:
        return subprocess.run(
            command,
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )

    if logger.verbose:
        result = _run()
        logger.log_output(result.stdout, "stdout")
        logger.log_output(result.stderr, "stderr")
        return result.returncode, result.stdout, result.stderr

    spinner = Spinner("dots", text=f"[cyan]{escape(description)}...[/cyan]")
    padded_spinner = Padding(spinner, (0, 0, 0, 2))

    with Live(padded_spinner, console=logger.console, refresh_per_second=10) as live:
        result = _run()

        logger.log_output(result.stdout, "stdout")
        logger.log_output(result.stderr, "stderr")

        if result.returncode == 0:
            mark = Text("  ✓ ", style="dim")
        else:
            mark = Text("  ✗ ", style="red")
        mark.append(description, style="dim")
        live.update(mark)

    return result.returncode, result.stdout, result.stderr
