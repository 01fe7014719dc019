"""
Deployment executor: build and (re)start the application container(s).

A compose definition at the artifact root wins; otherwise a single named
container is built from the Dockerfile. Either way the result is only
trusted once the runtime reports a running container with the app name.
"""

import shlex
from typing import Optional

from dockdeploy.constants import (
    COMPOSE_FILE_NAMES,
    COMPOSE_SELECT_SNIPPET,
    DEFAULT_COMMAND_TIMEOUT,
    PROBE_TIMEOUT,
)
from dockdeploy.exceptions import DeploymentError
from dockdeploy.logger import DeployLogger
from dockdeploy.models.results import SSHResult
from dockdeploy.models.session import RemoteApplication
from dockdeploy.models.ssh import SSHConnection
from dockdeploy.services.ssh_service import SSHService

STRATEGY_COMPOSE = "compose"
STRATEGY_CONTAINER = "container"


class DeploymentExecutor:
    """Drives the container runtime on the target."""

    def __init__(
        self,
        ssh: SSHService,
        logger: DeployLogger,
        timeout: int = DEFAULT_COMMAND_TIMEOUT,
    ):
        self.ssh = ssh
        self.logger = logger
        self.timeout = timeout

    def deploy(self, connection: SSHConnection, application: RemoteApplication) -> str:
        """
        Deploy the application and verify its container is running.

        Returns:
            The strategy used: "compose" or "container"

        Raises:
            DeploymentError: on build/run failure or when no container is running
        """
        compose_file = self.find_compose_file(connection, application)

        if compose_file:
            self.logger.log(f"Found {compose_file}, deploying with compose")
            self.deploy_compose(connection, application, compose_file)
            strategy = STRATEGY_COMPOSE
        else:
            self.logger.log("No compose definition found, deploying a single container")
            self.deploy_container(connection, application)
            strategy = STRATEGY_CONTAINER

        self.verify_running(connection, application.name)
        return strategy

    def find_compose_file(
        self, connection: SSHConnection, application: RemoteApplication
    ) -> Optional[str]:
        """Name of the compose definition at the artifact root, if any."""
        candidates = " ".join(COMPOSE_FILE_NAMES)
        script = (
            f"cd {shlex.quote(application.remote_dir)} 2>/dev/null || exit 0\n"
            f"for f in {candidates}; do\n"
            '  if [ -f "$f" ]; then echo "$f"; exit 0; fi\n'
            "done\n"
        )
        result = self.ssh.execute_script(connection, script, timeout=PROBE_TIMEOUT)
        if result.is_failure:
            raise DeploymentError(
                "Could not inspect the remote project directory",
                context=result.stderr.strip() or None,
            )
        found = result.stdout.strip().splitlines()
        return found[0].strip() if found else None

    def deploy_compose(
        self, connection: SSHConnection, application: RemoteApplication, compose_file: str
    ) -> None:
        down = self.compose(connection, application, compose_file, "down --remove-orphans")
        if down.is_failure:
            # Mirrors `down || true`: nothing to tear down is not an error
            self.logger.warning(f"compose down exited with {down.returncode}, continuing")

        up = self.compose(
            connection, application, compose_file, "up -d --build", timeout=self.timeout
        )
        if up.is_failure:
            raise DeploymentError(
                "compose up failed",
                context=_tail(up.stderr) or f"exit {up.returncode}",
            )

    def compose(
        self,
        connection: SSHConnection,
        application: RemoteApplication,
        compose_file: str,
        arguments: str,
        timeout: int = PROBE_TIMEOUT,
    ) -> SSHResult:
        """Run a compose subcommand from the artifact root."""
        script = (
            "set -e\n"
            f"cd {shlex.quote(application.remote_dir)}\n"
            f"{COMPOSE_SELECT_SNIPPET}\n"
            f"COMPOSE_PROJECT_NAME={shlex.quote(application.name)} "
            f"$COMPOSE -f {shlex.quote(compose_file)} {arguments}\n"
        )
        self.logger.log_command(f"compose -f {compose_file} {arguments}")
        result = self.ssh.execute_script(connection, script, timeout=timeout)
        self.logger.log_output(result.stdout, "stdout")
        self.logger.log_output(result.stderr, "stderr")
        return result

    def deploy_container(
        self, connection: SSHConnection, application: RemoteApplication
    ) -> None:
        if application.port is None:
            raise DeploymentError("An application port is required for a container deploy")

        name = shlex.quote(application.name)
        self.remove_container(connection, application.name)

        self._run_or_fail(
            connection,
            f"docker build -t {name} {shlex.quote(application.remote_dir)}",
            "docker build failed",
            timeout=self.timeout,
        )
        port = application.port
        self._run_or_fail(
            connection,
            f"docker run -d --name {name} -p {port}:{port} {name}",
            "docker run failed",
            timeout=self.timeout,
        )

    def remove_container(self, connection: SSHConnection, name: str) -> bool:
        """
        Stop and remove a container, treating "no such container" as done.

        Returns:
            True if a container existed and was removed

        Raises:
            DeploymentError: if an existing container could not be stopped or removed
        """
        quoted = shlex.quote(name)
        existed = False

        for action in ("stop", "rm"):
            result = self._run(connection, f"docker {action} {quoted}")
            if result.is_success:
                existed = True
                continue
            if self.container_exists(connection, name):
                raise DeploymentError(
                    f"docker {action} {name} failed",
                    context=result.stderr.strip() or None,
                )
            self.logger.log(f"No container named {name} to {action}")

        return existed

    def container_exists(self, connection: SSHConnection, name: str) -> bool:
        """True if a container with exactly this name exists, running or not."""
        name_filter = shlex.quote(f"name=^/{name}$")
        result = self.ssh.execute_command(
            connection, f"docker ps -aq -f {name_filter}", timeout=PROBE_TIMEOUT
        )
        return result.is_success and bool(result.stdout.strip())

    def is_running(self, connection: SSHConnection, name: str) -> bool:
        result = self.ssh.execute_command(
            connection, f"docker ps -q -f {shlex.quote('name=' + name)}", timeout=PROBE_TIMEOUT
        )
        return result.is_success and bool(result.stdout.strip())

    def verify_running(self, connection: SSHConnection, name: str) -> None:
        """Build success does not imply run success; ask the runtime."""
        if not self.is_running(connection, name):
            raise DeploymentError(
                "Container failed to start",
                context=f"No running container matches name={name}",
            )
        self.logger.log(f"Container {name} is running")

    def _run(
        self, connection: SSHConnection, command: str, timeout: int = PROBE_TIMEOUT
    ) -> SSHResult:
        self.logger.log_command(command)
        result = self.ssh.execute_command(connection, command, timeout=timeout)
        self.logger.log_output(result.stdout, "stdout")
        self.logger.log_output(result.stderr, "stderr")
        return result

    def _run_or_fail(
        self, connection: SSHConnection, command: str, message: str, timeout: int
    ) -> SSHResult:
        result = self._run(connection, command, timeout=timeout)
        if result.is_failure:
            raise DeploymentError(message, context=_tail(result.stderr) or f"exit {result.returncode}")
        return result


def _tail(text: str, lines: int = 10) -> str:
    return "\n".join(text.strip().splitlines()[-lines:])
