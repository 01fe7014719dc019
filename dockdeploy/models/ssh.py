"""
SSH Models

Dataclass models for the remote target and an opened channel to it.
"""

from dataclasses import dataclass
from pathlib import Path

from dockdeploy.constants import DEFAULT_SSH_PORT, SSH_CONNECTION_TIMEOUT


@dataclass(frozen=True)
class RemoteTarget:
    """Addressable host plus the authentication context needed to reach it."""

    host: str
    user: str
    key_path: str
    connect_timeout: int = SSH_CONNECTION_TIMEOUT
    port: int = DEFAULT_SSH_PORT

    @property
    def key_path_expanded(self) -> Path:
        """Get expanded key path (resolves ~)."""
        return Path(self.key_path).expanduser()

    @property
    def connection_string(self) -> str:
        """Get SSH connection string (user@host)."""
        return f"{self.user}@{self.host}"

    def ssh_options(self, batch: bool = True) -> list[str]:
        """Common -i/-o options shared by ssh and scp."""
        options = [
            "-i",
            str(self.key_path_expanded),
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            f"ConnectTimeout={self.connect_timeout}",
        ]
        if batch:
            options.extend(["-o", "BatchMode=yes"])
        return options

    @property
    def ssh_command_prefix(self) -> list[str]:
        """Get SSH command prefix for subprocess."""
        return ["ssh", *self.ssh_options(), "-p", str(self.port), self.connection_string]

    def scp_command(self, local_path: str, remote_path: str) -> list[str]:
        """Build a recursive scp invocation copying local_path to remote_path."""
        return [
            "scp",
            *self.ssh_options(),
            "-P",
            str(self.port),
            "-r",
            local_path,
            f"{self.connection_string}:{remote_path}",
        ]

    def __repr__(self) -> str:
        return f"RemoteTarget(host={self.host}, user={self.user}, key={self.key_path})"


@dataclass(frozen=True)
class SSHConnection:
    """A target that answered the connectivity probe."""

    target: RemoteTarget

    @property
    def host(self) -> str:
        return self.target.host

    @property
    def user(self) -> str:
        return self.target.user

    def build_command(self, remote_command: str) -> list[str]:
        """Build full SSH command with remote command."""
        return self.target.ssh_command_prefix + [remote_command]

    def __repr__(self) -> str:
        return f"SSHConnection(host={self.target.host}, user={self.target.user})"
