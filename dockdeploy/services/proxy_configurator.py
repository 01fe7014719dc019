"""Reverse proxy configuration: one nginx fragment per application."""

import base64
import shlex
from pathlib import Path

from jinja2 import Template

from dockdeploy.constants import (
    NGINX_CONF_DIR,
    NGINX_DEFAULT_SITE,
    NGINX_MAIN_CONF,
    NGINX_SERVICE,
    PROBE_TIMEOUT,
    PROXY_LISTEN_PORT,
    PROXY_TEMPLATE,
)
from dockdeploy.exceptions import ConfigurationError
from dockdeploy.logger import DeployLogger
from dockdeploy.models.session import RemoteApplication
from dockdeploy.models.ssh import SSHConnection
from dockdeploy.services.ssh_service import SSHService

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
BACKUP_SUFFIX = ".dockdeploy-bak"


class ProxyConfigurator:
    """Writes, validates and loads the nginx fragment routing port 80 to the app."""

    def __init__(self, ssh: SSHService, logger: DeployLogger):
        self.ssh = ssh
        self.logger = logger

    def render(self, application: RemoteApplication) -> str:
        """Render the server block for this application."""
        if application.port is None:
            raise ConfigurationError("An application port is required for the proxy")

        template_content = (TEMPLATES_DIR / PROXY_TEMPLATE).read_text()
        return Template(template_content, keep_trailing_newline=True).render(
            app_name=application.name,
            app_port=application.port,
            listen_port=PROXY_LISTEN_PORT,
        )

    def configure(self, connection: SSHConnection, application: RemoteApplication) -> None:
        """
        Replace the fragment, check the full nginx config, then reload.

        Reload only happens after `nginx -t` passes, so a bad fragment never
        replaces the configuration nginx is currently serving.

        Raises:
            ConfigurationError: on write, syntax-check or reload failure
        """
        path = application.proxy_config_path
        quoted = shlex.quote(path)
        backup = shlex.quote(path + BACKUP_SUFFIX)

        self._run_or_fail(
            connection,
            f"if [ -f {quoted} ]; then sudo cp -p {quoted} {backup}; "
            f"else sudo rm -f {backup}; fi",
            f"Could not back up {path}",
        )
        self.claim_default_server(connection, path)
        self.write_fragment(connection, path, self.render(application))

        check = self._run(connection, "sudo nginx -t")
        if check.is_failure:
            self._restore(connection, quoted, backup)
            raise ConfigurationError(
                "Nginx config test failed",
                context=check.stderr.strip() or None,
            )
        self.logger.log("Nginx configuration syntax is valid")

        self.reload(connection)
        self._run(connection, f"sudo rm -f {backup}")
        self.logger.log(f"Proxy on port {PROXY_LISTEN_PORT} routes to 127.0.0.1:{application.port}")

    def claim_default_server(self, connection: SSHConnection, path: str) -> None:
        """
        Make this fragment the only default server on port 80.

        Drops the Debian-style default site and strips `default_server` from
        every other enabled config (the RHEL main config, other fragments),
        since nginx refuses two default servers on one port.
        """
        script = (
            "set -e\n"
            f"sudo rm -f {shlex.quote(NGINX_DEFAULT_SITE)}\n"
            f"for f in {shlex.quote(NGINX_MAIN_CONF)} /etc/nginx/sites-enabled/* "
            f"{shlex.quote(NGINX_CONF_DIR)}/*.conf; do\n"
            '  [ -f "$f" ] || continue\n'
            f'  [ "$f" = {shlex.quote(path)} ] && continue\n'
            '  if sudo grep -q "default_server" "$f"; then\n'
            "    sudo sed -i -E 's/(listen[^;]*)[[:space:]]+default_server/\\1/' \"$f\"\n"
            '    echo "$f"\n'
            "  fi\n"
            "done\n"
        )
        self.logger.log_command("claim default server")
        result = self.ssh.execute_script(connection, script, timeout=PROBE_TIMEOUT)
        self.logger.log_output(result.stdout, "stdout")
        self.logger.log_output(result.stderr, "stderr")
        if result.is_failure:
            raise ConfigurationError(
                "Could not disable the distro default site",
                context=result.stderr.strip() or None,
            )
        for changed in result.stdout.split():
            self.logger.log(f"Removed default_server from {changed}")

    def write_fragment(self, connection: SSHConnection, path: str, content: str) -> None:
        """Overwrite the fragment wholesale; base64 avoids heredoc escaping issues."""
        encoded = base64.b64encode(content.encode()).decode()
        self.logger.log_command(f"write {path}")
        result = self.ssh.execute_command(
            connection,
            f"echo '{encoded}' | base64 -d | sudo tee {shlex.quote(path)} >/dev/null",
            timeout=PROBE_TIMEOUT,
        )
        if result.is_failure:
            raise ConfigurationError(
                f"Could not write {path}", context=result.stderr.strip() or None
            )
        self.logger.log_output(content, "file")

    def reload(self, connection: SSHConnection) -> None:
        self._run_or_fail(
            connection,
            f"sudo systemctl reload {NGINX_SERVICE}",
            "Nginx reload failed",
        )

    def _restore(self, connection: SSHConnection, quoted: str, backup: str) -> None:
        result = self._run(
            connection,
            f"if [ -f {backup} ]; then sudo mv -f {backup} {quoted}; "
            f"else sudo rm -f {quoted}; fi",
        )
        if result.is_failure:
            self.logger.warning("Could not restore the previous proxy fragment")
        else:
            self.logger.log("Previous proxy fragment restored")

    def _run(self, connection: SSHConnection, command: str):
        self.logger.log_command(command)
        result = self.ssh.execute_command(connection, command, timeout=PROBE_TIMEOUT)
        self.logger.log_output(result.stdout, "stdout")
        self.logger.log_output(result.stderr, "stderr")
        return result

    def _run_or_fail(self, connection: SSHConnection, command: str, message: str):
        result = self._run(connection, command)
        if result.is_failure:
            raise ConfigurationError(message, context=result.stderr.strip() or None)
        return result
