"""
Shared pytest fixtures for dockdeploy tests.

This module provides:
- A DeployLogger writing into a temporary directory with a silent console
- A target, connection and application matching a typical deployment
- A fully validated DeploymentSession
"""

import io
from pathlib import Path

import pytest
from rich.console import Console

from dockdeploy.logger import DeployLogger
from dockdeploy.models.session import DeploymentSession, RemoteApplication
from dockdeploy.models.ssh import RemoteTarget, SSHConnection
from tests.fakes import FakeSSHService


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=120)


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def logger(log_dir: Path, console: Console):
    deploy_logger = DeployLogger("test", log_dir=log_dir, console_=console)
    yield deploy_logger
    deploy_logger.close()


@pytest.fixture
def target() -> RemoteTarget:
    return RemoteTarget(host="203.0.113.10", user="ubuntu", key_path="~/.ssh/id_ed25519")


@pytest.fixture
def connection(target: RemoteTarget) -> SSHConnection:
    return SSHConnection(target)


@pytest.fixture
def application() -> RemoteApplication:
    return RemoteApplication(name="myapp", remote_dir="/home/ubuntu/repo", port=8080)


@pytest.fixture
def ssh() -> FakeSSHService:
    return FakeSSHService()


@pytest.fixture
def session(tmp_path: Path) -> DeploymentSession:
    return DeploymentSession.from_inputs(
        repo_url="https://github.com/acme/shop.git",
        token="ghp_secret123",
        user="ubuntu",
        host="203.0.113.10",
        key_path="~/.ssh/id_ed25519",
        port="8080",
        local_dir=str(tmp_path / "repo"),
    )


def read_log(log_dir: Path) -> str:
    return "".join(p.read_text() for p in sorted(log_dir.glob("deploy_*.log")))
