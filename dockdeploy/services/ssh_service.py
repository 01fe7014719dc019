"""SSH service for executing commands on the remote target."""

import subprocess
import time
from typing import Callable, Optional

from dockdeploy.constants import PROBE_TIMEOUT, SSH_TRANSPORT_EXIT_CODE
from dockdeploy.exceptions import ConnectFailure, ConnectivityError
from dockdeploy.models.results import SSHResult
from dockdeploy.models.ssh import RemoteTarget, SSHConnection

AUTH_FAILURE_MARKERS = (
    "permission denied",
    "authentication failed",
    "too many authentication failures",
    "no such identity",
)
TIMEOUT_MARKERS = (
    "connection timed out",
    "operation timed out",
)
TRANSPORT_FAILURE_MARKERS = (
    "could not resolve hostname",
    "connection refused",
    "no route to host",
    "connection closed by",
    "connection reset by",
    "network is unreachable",
    "broken pipe",
    "lost connection",
) + AUTH_FAILURE_MARKERS + TIMEOUT_MARKERS

CONNECT_PROBE = "echo Connection successful"


def classify_ssh_failure(stderr: str) -> Optional[ConnectFailure]:
    """
    Map ssh client diagnostics to a connect failure.

    Returns None when stderr does not look like an ssh transport problem,
    i.e. the remote command itself exited 255.
    """
    text = (stderr or "").lower()
    if any(marker in text for marker in AUTH_FAILURE_MARKERS):
        return ConnectFailure.AUTH_FAILED
    if any(marker in text for marker in TIMEOUT_MARKERS):
        return ConnectFailure.TIMEOUT
    if any(marker in text for marker in TRANSPORT_FAILURE_MARKERS):
        return ConnectFailure.UNREACHABLE
    return None


class SSHService:
    """
    Remote execution channel over the ssh/scp clients.

    Every call is bounded by a timeout; an expired timeout or an ssh
    transport failure raises ConnectivityError, which is never retried.
    """

    def __init__(self, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run):
        """
        Initialize SSH service.

        Args:
            runner: subprocess.run compatible callable
        """
        self.runner = runner

    def connect(self, target: RemoteTarget) -> SSHConnection:
        """
        Open (probe) an authenticated connection to the target.

        Raises:
            ConnectivityError: TIMEOUT, AUTH_FAILED or UNREACHABLE
        """
        connection = SSHConnection(target)
        # ConnectTimeout covers the TCP handshake; allow the same again for auth
        result = self._invoke(
            connection,
            connection.build_command(CONNECT_PROBE),
            CONNECT_PROBE,
            timeout=target.connect_timeout * 2,
        )

        if result.is_failure:
            reason = classify_ssh_failure(result.stderr) or ConnectFailure.UNREACHABLE
            raise ConnectivityError(
                f"SSH connectivity to {target.connection_string} failed ({reason.value})",
                reason=reason,
                context=result.stderr.strip() or None,
            )

        return connection

    def execute_command(
        self,
        connection: SSHConnection,
        command: str,
        timeout: int = PROBE_TIMEOUT,
    ) -> SSHResult:
        """
        Execute a single command line on the target.

        Args:
            connection: Connection returned by connect()
            command: Command to execute
            timeout: Command timeout in seconds

        Returns:
            SSHResult with execution details
        """
        return self._invoke(
            connection, connection.build_command(command), command, timeout=timeout
        )

    def execute_script(
        self,
        connection: SSHConnection,
        script: str,
        timeout: int = PROBE_TIMEOUT,
    ) -> SSHResult:
        """
        Execute a multi-line script as one remote unit.

        The script is fed to `bash -s` on stdin so no quoting survives a
        second shell and nothing depends on variables from the local side.
        """
        return self._invoke(
            connection,
            connection.build_command("bash -s"),
            script,
            timeout=timeout,
            stdin=script,
        )

    def copy_tree(
        self,
        connection: SSHConnection,
        local_path: str,
        remote_path: str,
        timeout: int = PROBE_TIMEOUT,
    ) -> SSHResult:
        """Recursively copy a local tree into remote_path with scp."""
        argv = connection.target.scp_command(local_path, remote_path)
        return self._invoke(connection, argv, " ".join(argv), timeout=timeout)

    def _invoke(
        self,
        connection: SSHConnection,
        argv: list[str],
        command: str,
        timeout: int,
        stdin: Optional[str] = None,
    ) -> SSHResult:
        host = connection.host
        start_time = time.time()

        try:
            completed = self.runner(
                argv,
                input=stdin,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise ConnectivityError(
                f"SSH command timed out after {timeout}s",
                reason=ConnectFailure.TIMEOUT,
                context=f"Host: {host}, Command: {_first_line(command)}",
            )
        except OSError as e:
            raise ConnectivityError(
                f"Could not start ssh client: {e}",
                reason=ConnectFailure.UNREACHABLE,
                context=f"Host: {host}",
            )

        result = SSHResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
            host=host,
            command=command,
            duration_seconds=time.time() - start_time,
        )

        if result.returncode == SSH_TRANSPORT_EXIT_CODE and command != CONNECT_PROBE:
            reason = classify_ssh_failure(result.stderr)
            if reason is not None:
                raise ConnectivityError(
                    f"Lost SSH connection to {connection.target.connection_string} ({reason.value})",
                    reason=reason,
                    context=result.stderr.strip(),
                )

        return result


def _first_line(command: str) -> str:
    lines = command.strip().splitlines()
    if not lines:
        return ""
    suffix = " ..." if len(lines) > 1 else ""
    return lines[0] + suffix
