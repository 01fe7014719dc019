"""
In-memory stand-ins for the remote target.

FakeSSHService records every command and script it is asked to run and
answers from a list of handlers (first match wins). The host classes keep
just enough state to behave like a real machine across several calls.
"""

import re
from typing import Callable, Optional, Union

from dockdeploy.exceptions import ConnectivityError
from dockdeploy.models.results import SSHResult
from dockdeploy.models.ssh import RemoteTarget, SSHConnection

Reply = Union[SSHResult, Callable[[str], SSHResult]]


def ok(stdout: str = "") -> SSHResult:
    return SSHResult(returncode=0, stdout=stdout)


def fail(returncode: int = 1, stderr: str = "") -> SSHResult:
    return SSHResult(returncode=returncode, stderr=stderr)


class FakeSSHService:
    """Drop-in for SSHService that never spawns a process."""

    def __init__(self, fallback: Optional[Callable[[str], SSHResult]] = None):
        self.handlers: list[tuple[re.Pattern, Reply]] = []
        self.fallback = fallback
        self.calls: list[tuple[str, str]] = []
        self.connect_error: Optional[ConnectivityError] = None
        self.connected: list[RemoteTarget] = []
        # HTTP status nginx on the target answers with
        self.http_status = "200"

    def on(self, pattern: str, reply: Reply) -> "FakeSSHService":
        self.handlers.append((re.compile(pattern), reply))
        return self

    @property
    def commands(self) -> list[str]:
        return [text for _, text in self.calls]

    def ran(self, pattern: str) -> bool:
        return any(re.search(pattern, text) for text in self.commands)

    def count(self, pattern: str) -> int:
        return sum(1 for text in self.commands if re.search(pattern, text))

    def connect(self, target: RemoteTarget) -> SSHConnection:
        self.connected.append(target)
        if self.connect_error is not None:
            raise self.connect_error
        return SSHConnection(target)

    def execute_command(self, connection, command, timeout=60) -> SSHResult:
        self.calls.append(("command", command))
        return self._dispatch(command)

    def execute_script(self, connection, script, timeout=60) -> SSHResult:
        self.calls.append(("script", script))
        return self._dispatch(script)

    def copy_tree(self, connection, local_path, remote_path, timeout=60) -> SSHResult:
        text = f"scp -r {local_path} {remote_path}"
        self.calls.append(("copy", text))
        return self._dispatch(text)

    def _dispatch(self, text: str) -> SSHResult:
        for pattern, reply in self.handlers:
            if pattern.search(text):
                return reply(text) if callable(reply) else reply
        if text.startswith("curl ") and "%{http_code}" in text:
            return ok(self.http_status)
        if self.fallback is not None:
            return self.fallback(text)
        return ok()


# Package name -> tool it provides, per installer
PACKAGE_TOOLS = {
    "docker.io": "docker",
    "docker": "docker",
    "docker-compose": "docker-compose",
    "docker-compose-plugin": "docker-compose",
    "nginx": "nginx",
}

PROBES = {
    "command -v docker >/dev/null 2>&1": "docker",
    "command -v docker-compose >/dev/null 2>&1 || docker compose version >/dev/null 2>&1": "docker-compose",
    "command -v nginx >/dev/null 2>&1 || test -x /usr/sbin/nginx": "nginx",
}


class FakeLinuxHost:
    """Package managers, installed tools and systemd units of a target."""

    def __init__(self, installed=(), managers=("apt-get", "curl"), broken=()):
        self.installed = set(installed)
        self.managers = set(managers)
        self.broken = set(broken)
        self.active: set[str] = set()
        self.enabled: set[str] = set()
        self.installs: list[str] = []

    def __call__(self, text: str) -> SSHResult:
        if text in PROBES:
            return ok() if PROBES[text] in self.installed else fail()

        match = re.fullmatch(r"command -v (\S+) >/dev/null 2>&1", text)
        if match:
            return ok() if match.group(1) in self.managers else fail()

        match = re.search(r"(apt-get|dnf|yum) install -y (.+)", text)
        if match:
            installer = {"apt-get": "apt"}.get(match.group(1), match.group(1))
            return self._install(installer, match.group(2).split())

        if "sudo curl" in text:
            return self._install("compose-release", ["docker-compose"])

        match = re.search(r"systemctl start (\S+)", text)
        if match:
            service = match.group(1)
            if service not in self.installed:
                return fail(stderr=f"Unit {service}.service not found.")
            self.active.add(service)
            self.enabled.add(service)
            return ok()

        match = re.fullmatch(
            r"systemctl is-active --quiet (\S+) && systemctl is-enabled --quiet \S+", text
        )
        if match:
            service = match.group(1)
            return ok() if service in self.active and service in self.enabled else fail(3)

        return ok("version 1.0")

    def _install(self, installer: str, packages: list[str]) -> SSHResult:
        self.installs.append(installer)
        if installer in self.broken:
            return fail(100, f"{installer}: unable to install {' '.join(packages)}")
        for package in packages:
            self.installed.add(PACKAGE_TOOLS.get(package, package))
        return ok()


class FakeDockerHost:
    """Container runtime state: which containers exist and which run."""

    def __init__(self, compose_file: Optional[str] = None, crash_on_start=False):
        self.compose_file = compose_file
        self.crash_on_start = crash_on_start
        self.containers: set[str] = set()
        self.running: set[str] = set()
        self.fail_build = False

    def __call__(self, text: str) -> SSHResult:
        if "for f in" in text:
            return ok(f"{self.compose_file}\n" if self.compose_file else "")

        match = re.search(r"COMPOSE_PROJECT_NAME=(\S+) \$COMPOSE -f \S+ (.+)", text)
        if match:
            return self._compose(match.group(1), match.group(2).strip())

        match = re.fullmatch(r"docker ps -aq -f 'name=\^/(\S+)\$'", text)
        if match:
            return ok("abc123\n" if match.group(1) in self.containers else "")

        match = re.fullmatch(r"docker ps -q -f name=(\S+)", text)
        if match:
            return ok("abc123\n" if match.group(1) in self.running else "")

        match = re.fullmatch(r"docker stop (\S+)", text)
        if match:
            name = match.group(1)
            if name not in self.containers:
                return fail(stderr=f"Error: No such container: {name}")
            self.running.discard(name)
            return ok(name)

        match = re.fullmatch(r"docker rm (\S+)", text)
        if match:
            name = match.group(1)
            if name not in self.containers:
                return fail(stderr=f"Error: No such container: {name}")
            if name in self.running:
                return fail(stderr="cannot remove a running container")
            self.containers.discard(name)
            return ok(name)

        if text.startswith("docker build"):
            return fail(stderr="failed to solve") if self.fail_build else ok()

        match = re.match(r"docker run -d --name (\S+) ", text)
        if match:
            name = match.group(1)
            if name in self.containers:
                return fail(125, f'Conflict. The container name "/{name}" is already in use')
            self.containers.add(name)
            if not self.crash_on_start:
                self.running.add(name)
            return ok("abc123")

        return ok()

    def _compose(self, project: str, arguments: str) -> SSHResult:
        if arguments.startswith("down"):
            self.containers.discard(project)
            self.running.discard(project)
            return ok()
        if arguments.startswith("up"):
            self.containers.add(project)
            if not self.crash_on_start:
                self.running.add(project)
            return ok()
        return ok()
