"""Deployment validation service."""

import shlex
from typing import List

from dockdeploy.constants import (
    DOCKER_SERVICE,
    HTTP_PROBE_TIMEOUT,
    PROBE_TIMEOUT,
    PROXY_GATEWAY_ERRORS,
    PROXY_LISTEN_PORT,
)
from dockdeploy.exceptions import ValidationError
from dockdeploy.logger import DeployLogger
from dockdeploy.models.results import CheckResult
from dockdeploy.models.session import RemoteApplication
from dockdeploy.models.ssh import SSHConnection
from dockdeploy.services.ssh_service import SSHService


class DeploymentValidator:
    """Confirms, from the target itself, that runtime, container and proxy are live."""

    def __init__(self, ssh: SSHService, logger: DeployLogger):
        self.ssh = ssh
        self.logger = logger

    def validate(
        self, connection: SSHConnection, application: RemoteApplication
    ) -> List[CheckResult]:
        """
        Run every check, log each outcome, and fail on the first unmet one.

        Returns:
            The check results (all passed)

        Raises:
            ValidationError: naming the first failed check
        """
        results = self.run_checks(connection, application)

        for check in results:
            if check.passed:
                self.logger.log(f"PASS {check.name}: {check.detail}")
            else:
                self.logger.log(f"FAIL {check.name}: {check.detail}", "ERROR")

        failed = [check for check in results if not check.passed]
        if failed:
            raise ValidationError(
                failed[0].detail,
                context="; ".join(f"{c.name}: {c.detail}" for c in failed),
            )
        return results

    def run_checks(
        self, connection: SSHConnection, application: RemoteApplication
    ) -> List[CheckResult]:
        """Evaluate all three checks in a fixed order; none short-circuits another."""
        return [
            self._check_runtime(connection),
            self._check_container(connection, application.name),
            self._check_proxy(connection),
        ]

    def _check_runtime(self, connection: SSHConnection) -> CheckResult:
        result = self.ssh.execute_command(
            connection, f"systemctl is-active --quiet {DOCKER_SERVICE}", timeout=PROBE_TIMEOUT
        )
        if result.is_success:
            return CheckResult("runtime", True, "Docker service is running")
        return CheckResult("runtime", False, "Docker service is not running")

    def _check_container(self, connection: SSHConnection, name: str) -> CheckResult:
        result = self.ssh.execute_command(
            connection, f"docker ps -q -f {shlex.quote('name=' + name)}", timeout=PROBE_TIMEOUT
        )
        if result.is_success and result.stdout.strip():
            return CheckResult("container", True, f"Container {name} is active")
        return CheckResult("container", False, f"Container {name} is not running")

    def _check_proxy(self, connection: SSHConnection) -> CheckResult:
        url = f"http://localhost:{PROXY_LISTEN_PORT}"
        result = self.ssh.execute_command(
            connection,
            f"curl -s -o /dev/null -w '%{{http_code}}' --max-time {HTTP_PROBE_TIMEOUT} {url}",
            timeout=PROBE_TIMEOUT,
        )
        if result.is_failure:
            return CheckResult(
                "proxy", False, f"Nginx proxying failed locally (curl exit {result.returncode})"
            )

        # 000 means no HTTP response at all
        status = result.stdout.strip()
        if not status.isdigit() or status == "000" or status in PROXY_GATEWAY_ERRORS:
            return CheckResult(
                "proxy", False, f"Nginx proxying failed locally (HTTP {status or 'no status'})"
            )
        return CheckResult("proxy", True, f"Nginx proxying works locally (HTTP {status})")
