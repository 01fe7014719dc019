"""
Idempotent provisioning of the target's system dependencies.

Each dependency carries an ordered chain of install strategies. A strategy
is only tried when its package manager (or download tool) exists on the
target, and the chain stops at the first one that leaves the tool present.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from dockdeploy.constants import (
    COMPOSE_BINARY_PATH,
    COMPOSE_RELEASE_URL,
    COMPOSE_SELECT_SNIPPET,
    DEFAULT_COMMAND_TIMEOUT,
    DOCKER_GROUP,
    DOCKER_SERVICE,
    NGINX_SERVICE,
    PROBE_TIMEOUT,
)
from dockdeploy.exceptions import ProvisioningError
from dockdeploy.logger import DeployLogger
from dockdeploy.models.results import SSHResult
from dockdeploy.models.ssh import SSHConnection
from dockdeploy.services.ssh_service import SSHService


class InstallStrategy(ABC):
    """One way of getting software onto the target."""

    name = "strategy"

    @abstractmethod
    def availability_command(self) -> str:
        """Command exiting 0 when this strategy can run on the target."""

    @abstractmethod
    def install_script(self) -> str:
        """Script installing the software."""

    def is_available(self, ssh: SSHService, connection: SSHConnection) -> bool:
        result = ssh.execute_command(
            connection, self.availability_command(), timeout=PROBE_TIMEOUT
        )
        return result.is_success

    def install(
        self, ssh: SSHService, connection: SSHConnection, timeout: int
    ) -> SSHResult:
        return ssh.execute_script(connection, self.install_script(), timeout=timeout)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PackageManagerStrategy(InstallStrategy):
    """Install distribution packages through a system package manager."""

    manager = ""

    def __init__(self, packages: Optional[list[str]] = None):
        self.packages = packages or []

    def availability_command(self) -> str:
        return f"command -v {self.manager} >/dev/null 2>&1"

    def install_script(self) -> str:
        return "\n".join(["set -e", *self.install_lines()]) + "\n"

    def upgrade_script(self) -> str:
        return "\n".join(["set -e", *self.upgrade_lines()]) + "\n"

    @abstractmethod
    def install_lines(self) -> list[str]:
        pass

    @abstractmethod
    def upgrade_lines(self) -> list[str]:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({' '.join(self.packages)})"


class AptStrategy(PackageManagerStrategy):
    """Debian family."""

    name = "apt"
    manager = "apt-get"

    def install_lines(self) -> list[str]:
        return [
            "sudo apt-get update -y",
            "sudo DEBIAN_FRONTEND=noninteractive apt-get install -y "
            + " ".join(self.packages),
        ]

    def upgrade_lines(self) -> list[str]:
        return [
            "sudo apt-get update -y",
            "sudo DEBIAN_FRONTEND=noninteractive apt-get upgrade -y",
        ]


class DnfStrategy(PackageManagerStrategy):
    """RHEL family."""

    name = "dnf"
    manager = "dnf"

    def install_lines(self) -> list[str]:
        return [f"sudo dnf install -y {' '.join(self.packages)}"]

    def upgrade_lines(self) -> list[str]:
        return ["sudo dnf update -y"]


class YumStrategy(PackageManagerStrategy):
    """Older RHEL/CentOS."""

    name = "yum"
    manager = "yum"

    def install_lines(self) -> list[str]:
        return [f"sudo yum install -y {' '.join(self.packages)}"]

    def upgrade_lines(self) -> list[str]:
        return ["sudo yum update -y"]


class ComposeReleaseStrategy(InstallStrategy):
    """Download the standalone compose binary from GitHub releases."""

    name = "compose-release"

    def __init__(self, url: str = COMPOSE_RELEASE_URL, path: str = COMPOSE_BINARY_PATH):
        self.url = url
        self.path = path

    def availability_command(self) -> str:
        return "command -v curl >/dev/null 2>&1"

    def install_script(self) -> str:
        return (
            "set -e\n"
            f'sudo curl -fsSL "{self.url}" -o {self.path}\n'
            f"sudo chmod +x {self.path}\n"
        )


@dataclass
class Dependency:
    """A system dependency the deployment needs on the target."""

    name: str
    probe_command: str
    strategies: list[InstallStrategy] = field(default_factory=list)
    service: Optional[str] = None
    version_command: Optional[str] = None


def default_dependencies() -> list[Dependency]:
    """Container runtime, compose tool and proxy server, in install order."""
    return [
        Dependency(
            name="docker",
            probe_command="command -v docker >/dev/null 2>&1",
            strategies=[
                AptStrategy(["docker.io"]),
                DnfStrategy(["docker"]),
                YumStrategy(["docker"]),
            ],
            service=DOCKER_SERVICE,
            version_command="docker --version",
        ),
        Dependency(
            name="docker-compose",
            probe_command=(
                "command -v docker-compose >/dev/null 2>&1 "
                "|| docker compose version >/dev/null 2>&1"
            ),
            strategies=[
                ComposeReleaseStrategy(),
                AptStrategy(["docker-compose"]),
                DnfStrategy(["docker-compose-plugin"]),
                YumStrategy(["docker-compose-plugin"]),
            ],
            version_command=f'{COMPOSE_SELECT_SNIPPET}; $COMPOSE version',
        ),
        Dependency(
            name="nginx",
            # /usr/sbin is not on PATH for non-root users on Debian
            probe_command="command -v nginx >/dev/null 2>&1 || test -x /usr/sbin/nginx",
            strategies=[
                AptStrategy(["nginx"]),
                DnfStrategy(["nginx"]),
                YumStrategy(["nginx"]),
            ],
            service=NGINX_SERVICE,
            version_command="sudo nginx -v 2>&1",
        ),
    ]


def system_upgrade_strategies() -> list[PackageManagerStrategy]:
    return [AptStrategy(), DnfStrategy(), YumStrategy()]


class Provisioner:
    """Ensures docker, a compose tool and nginx are installed and running."""

    def __init__(
        self,
        ssh: SSHService,
        logger: DeployLogger,
        dependencies: Optional[list[Dependency]] = None,
        timeout: int = DEFAULT_COMMAND_TIMEOUT,
    ):
        self.ssh = ssh
        self.logger = logger
        self.dependencies = dependencies if dependencies is not None else default_dependencies()
        self.timeout = timeout

    def provision(
        self, connection: SSHConnection, upgrade_system: bool = False
    ) -> dict[str, str]:
        """
        Converge the target onto the required dependencies.

        Returns:
            Mapping of dependency name to how it was satisfied

        Raises:
            ProvisioningError: if a dependency cannot be installed or started
        """
        if upgrade_system:
            self.upgrade_system(connection)

        outcomes = {}
        for dependency in self.dependencies:
            outcomes[dependency.name] = self.ensure_dependency(connection, dependency)
            if dependency.service:
                self.ensure_service(connection, dependency.service)

        self._add_user_to_docker_group(connection)
        self._report_versions(connection)
        return outcomes

    def is_present(self, connection: SSHConnection, dependency: Dependency) -> bool:
        result = self.ssh.execute_command(
            connection, dependency.probe_command, timeout=PROBE_TIMEOUT
        )
        return result.is_success

    def ensure_dependency(self, connection: SSHConnection, dependency: Dependency) -> str:
        """Install the dependency unless present; returns 'present' or 'installed via <name>'."""
        if self.is_present(connection, dependency):
            self.logger.log(f"{dependency.name} already installed")
            return "present"

        self.logger.log(f"{dependency.name} not found, installing")
        attempts = []

        for strategy in dependency.strategies:
            if not strategy.is_available(self.ssh, connection):
                attempts.append(f"{strategy.name}: not available")
                continue

            self.logger.log_command(f"install {dependency.name} via {strategy!r}")
            result = strategy.install(self.ssh, connection, self.timeout)
            self.logger.log_output(result.stdout, "stdout")
            self.logger.log_output(result.stderr, "stderr")

            if result.is_failure:
                attempts.append(f"{strategy.name}: exit {result.returncode}")
                self.logger.warning(
                    f"Installing {dependency.name} via {strategy.name} failed, trying next installer"
                )
                continue

            if not self.is_present(connection, dependency):
                attempts.append(f"{strategy.name}: installed but not found")
                continue

            self.logger.success(f"{dependency.name} installed via {strategy.name}")
            return f"installed via {strategy.name}"

        raise ProvisioningError(
            f"Could not install {dependency.name}: no installer succeeded",
            context="; ".join(attempts) or "no installers configured",
        )

    def ensure_service(self, connection: SSHConnection, service: str) -> None:
        """Start and enable a systemd service, then confirm both took effect."""
        script = f"set -e\nsudo systemctl start {service}\nsudo systemctl enable {service}\n"
        result = self.ssh.execute_script(connection, script, timeout=PROBE_TIMEOUT)
        self.logger.log_output(result.output, "stdout")

        if result.is_failure:
            raise ProvisioningError(
                f"Could not start and enable the {service} service",
                context=result.stderr.strip() or None,
            )

        check = self.ssh.execute_command(
            connection,
            f"systemctl is-active --quiet {service} && systemctl is-enabled --quiet {service}",
            timeout=PROBE_TIMEOUT,
        )
        if check.is_failure:
            raise ProvisioningError(f"The {service} service is not active and enabled")

        self.logger.log(f"{service} service started and enabled")

    def upgrade_system(self, connection: SSHConnection) -> None:
        """Refresh and upgrade system packages with the first available manager."""
        for strategy in system_upgrade_strategies():
            if not strategy.is_available(self.ssh, connection):
                continue

            self.logger.log_command(f"system upgrade via {strategy.name}")
            result = self.ssh.execute_script(
                connection, strategy.upgrade_script(), timeout=self.timeout
            )
            self.logger.log_output(result.output, "stdout")
            if result.is_failure:
                raise ProvisioningError(
                    f"System upgrade via {strategy.name} failed",
                    context=result.stderr.strip() or None,
                )
            self.logger.success(f"System packages upgraded via {strategy.name}")
            return

        raise ProvisioningError("No supported package manager found for system upgrade")

    def _add_user_to_docker_group(self, connection: SSHConnection) -> None:
        result = self.ssh.execute_command(
            connection,
            f"sudo usermod -aG {DOCKER_GROUP} {connection.user}",
            timeout=PROBE_TIMEOUT,
        )
        if result.is_failure:
            self.logger.warning(
                f"Could not add {connection.user} to the {DOCKER_GROUP} group"
            )

    def _report_versions(self, connection: SSHConnection) -> None:
        for dependency in self.dependencies:
            if not dependency.version_command:
                continue
            result = self.ssh.execute_command(
                connection, dependency.version_command, timeout=PROBE_TIMEOUT
            )
            if result.is_success and result.output:
                self.logger.log(f"{dependency.name}: {result.output.splitlines()[0]}")
