"""Artifact transfer: copy the local project tree onto the target."""

import shlex
from pathlib import Path

from dockdeploy.constants import DEFAULT_COMMAND_TIMEOUT, PROBE_TIMEOUT
from dockdeploy.exceptions import TransferError
from dockdeploy.logger import DeployLogger
from dockdeploy.models.ssh import SSHConnection
from dockdeploy.services.ssh_service import SSHService


class TransferService:
    """Prepares the remote directory and copies the project tree into it."""

    def __init__(
        self,
        ssh: SSHService,
        logger: DeployLogger,
        timeout: int = DEFAULT_COMMAND_TIMEOUT,
    ):
        self.ssh = ssh
        self.logger = logger
        self.timeout = timeout

    def ensure_destination(self, connection: SSHConnection, path: str) -> None:
        """
        Create the remote directory if absent and verify it is writable.

        Raises:
            TransferError: if the directory cannot be created or written to
        """
        quoted = shlex.quote(path)
        owner = shlex.quote(f"{connection.user}:{connection.user}")
        command = (
            f"sudo mkdir -p {quoted} && sudo chmod 755 {quoted} "
            f"&& sudo chown {owner} {quoted}"
        )

        self.logger.log_command(command)
        result = self.ssh.execute_command(connection, command, timeout=PROBE_TIMEOUT)
        self.logger.log_output(result.stderr, "stderr")
        if result.is_failure:
            raise TransferError(
                f"Failed to create or configure remote directory {path}",
                context=result.stderr.strip() or None,
            )
        self.logger.log(f"Remote directory {path} created and configured")

        # A directory that exists is not necessarily one we can write to
        writable = self.ssh.execute_command(
            connection, f"[ -w {quoted} ]", timeout=PROBE_TIMEOUT
        )
        if writable.is_failure:
            raise TransferError(f"Remote directory {path} is not writable")
        self.logger.log(f"Verified remote directory {path} is writable")

    def transfer(self, connection: SSHConnection, local_tree: Path, path: str) -> None:
        """
        Recursively copy the contents of local_tree into path.

        A failed or interrupted copy is fatal; the half-copied tree is left
        for the next full run or for cleanup.
        """
        local_tree = Path(local_tree)
        if not local_tree.is_dir():
            raise TransferError(f"Local project directory {local_tree} does not exist")

        # "<dir>/." copies the directory's contents, not the directory itself
        source = f"{local_tree.resolve()}/."
        self.logger.log_command(f"scp -r {source} {connection.target.connection_string}:{path}")
        result = self.ssh.copy_tree(connection, source, path, timeout=self.timeout)
        self.logger.log_output(result.stderr, "stderr")

        if result.is_failure:
            tail = "\n".join(result.stderr.strip().splitlines()[-5:])
            raise TransferError(
                f"Failed to transfer files to {path}",
                context=tail or f"scp exited with {result.returncode}",
            )
        self.logger.log(f"Files transferred to {path}")
