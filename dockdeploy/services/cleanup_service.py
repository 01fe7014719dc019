"""
Cleanup: undo what a deployment left on the target.

Unlike the deployment pipeline this is best effort: every step runs even
when an earlier one failed, and "already absent" counts as done.
"""

import shlex
from typing import Callable, Optional

from dockdeploy.constants import NGINX_SERVICE, PROBE_TIMEOUT
from dockdeploy.exceptions import CleanupError, DeploymentError
from dockdeploy.logger import DeployLogger
from dockdeploy.models.results import CleanupReport
from dockdeploy.models.session import RemoteApplication
from dockdeploy.models.ssh import SSHConnection
from dockdeploy.services.deployment_executor import DeploymentExecutor
from dockdeploy.services.ssh_service import SSHService


class CleanupService:
    """Tears down containers, the artifact tree and the proxy fragment."""

    def __init__(self, ssh: SSHService, logger: DeployLogger, executor: Optional[DeploymentExecutor] = None):
        self.ssh = ssh
        self.logger = logger
        self.executor = executor or DeploymentExecutor(ssh, logger)

    def cleanup(
        self, connection: SSHConnection, application: RemoteApplication
    ) -> CleanupReport:
        """
        Run every cleanup step, collecting failures instead of stopping.

        ConnectivityError still propagates: without a channel nothing else
        can be removed either.
        """
        report = CleanupReport()
        steps: list[tuple[str, Callable[[], None]]] = [
            ("compose teardown", lambda: self._compose_down(connection, application)),
            ("container removal", lambda: self._remove_container(connection, application)),
            ("artifact removal", lambda: self._remove_artifacts(connection, application)),
            ("proxy fragment removal", lambda: self._remove_fragment(connection, application)),
            ("proxy reload", lambda: self._reload_proxy(connection)),
        ]

        for name, step in steps:
            try:
                step()
            except CleanupError as e:
                report.errors.append(e)
                self.logger.warning(f"{name} failed: {e.message}")
            else:
                report.completed.append(name)
                self.logger.log(f"Cleanup step done: {name}")

        return report

    def _compose_down(self, connection: SSHConnection, application: RemoteApplication) -> None:
        try:
            compose_file = self.executor.find_compose_file(connection, application)
        except DeploymentError as e:
            raise CleanupError("compose teardown", e.message, e.context)

        if not compose_file:
            self.logger.log("No compose definition on target, skipping compose teardown")
            return

        result = self.executor.compose(
            connection,
            application,
            compose_file,
            "down --remove-orphans",
            timeout=self.executor.timeout,
        )
        if result.is_failure:
            raise CleanupError(
                "compose teardown",
                "compose down failed",
                context=result.stderr.strip() or None,
            )

    def _remove_container(self, connection: SSHConnection, application: RemoteApplication) -> None:
        try:
            self.executor.remove_container(connection, application.name)
        except DeploymentError as e:
            raise CleanupError("container removal", e.message, e.context)

    def _remove_artifacts(self, connection: SSHConnection, application: RemoteApplication) -> None:
        self._run_or_collect(
            connection,
            "artifact removal",
            f"sudo rm -rf {shlex.quote(application.remote_dir)}",
        )

    def _remove_fragment(self, connection: SSHConnection, application: RemoteApplication) -> None:
        self._run_or_collect(
            connection,
            "proxy fragment removal",
            f"sudo rm -f {shlex.quote(application.proxy_config_path)}",
        )

    def _reload_proxy(self, connection: SSHConnection) -> None:
        # Nothing to reload on a host where nginx was never installed or is stopped
        script = (
            "if ! command -v nginx >/dev/null 2>&1 && [ ! -x /usr/sbin/nginx ]; then exit 0; fi\n"
            f"systemctl is-active --quiet {NGINX_SERVICE} || exit 0\n"
            "sudo nginx -t\n"
            f"sudo systemctl reload {NGINX_SERVICE}\n"
        )
        self.logger.log_command(f"reload {NGINX_SERVICE} if active")
        result = self.ssh.execute_script(connection, "set -e\n" + script, timeout=PROBE_TIMEOUT)
        self.logger.log_output(result.stderr, "stderr")
        if result.is_failure:
            raise CleanupError(
                "proxy reload", "Nginx reload failed", context=result.stderr.strip() or None
            )

    def _run_or_collect(self, connection: SSHConnection, step: str, command: str) -> None:
        self.logger.log_command(command)
        result = self.ssh.execute_command(connection, command, timeout=PROBE_TIMEOUT)
        self.logger.log_output(result.stderr, "stderr")
        if result.is_failure:
            raise CleanupError(
                step, f"{step} failed", context=result.stderr.strip() or None
            )
