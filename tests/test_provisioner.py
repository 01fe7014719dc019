"""Tests for idempotent provisioning with installer fallback."""

import pytest

from dockdeploy.exceptions import ProvisioningError
from dockdeploy.services.provisioner import Provisioner
from tests.fakes import FakeLinuxHost, FakeSSHService, fail

ALL_TOOLS = ("docker", "docker-compose", "nginx")


def provisioner_for(host, logger):
    ssh = FakeSSHService(fallback=host)
    return Provisioner(ssh, logger, timeout=30), ssh


def test_installs_everything_on_a_bare_host(logger, connection):
    host = FakeLinuxHost()
    provisioner, _ = provisioner_for(host, logger)

    outcomes = provisioner.provision(connection)

    assert outcomes == {
        "docker": "installed via apt",
        "docker-compose": "installed via compose-release",
        "nginx": "installed via apt",
    }
    assert host.installed >= set(ALL_TOOLS)
    assert host.active == {"docker", "nginx"}
    assert host.enabled == {"docker", "nginx"}


def test_second_run_installs_nothing(logger, connection):
    host = FakeLinuxHost()
    provisioner, ssh = provisioner_for(host, logger)

    provisioner.provision(connection)
    installs_after_first = list(host.installs)
    outcomes = provisioner.provision(connection)

    assert host.installs == installs_after_first
    assert set(outcomes.values()) == {"present"}


def test_present_tools_are_not_reinstalled(logger, connection):
    host = FakeLinuxHost(installed=ALL_TOOLS)
    provisioner, ssh = provisioner_for(host, logger)

    provisioner.provision(connection)

    assert host.installs == []
    assert not ssh.ran(r"install -y")


def test_falls_back_to_next_installer(logger, connection):
    host = FakeLinuxHost(
        installed=("docker-compose", "nginx"),
        managers=("apt-get", "dnf"),
        broken=("apt",),
    )
    provisioner, _ = provisioner_for(host, logger)

    outcomes = provisioner.provision(connection)

    assert host.installs == ["apt", "dnf"]
    assert outcomes["docker"] == "installed via dnf"
    assert "docker" in host.active
    assert "docker" in host.enabled


def test_unavailable_installers_are_skipped(logger, connection):
    host = FakeLinuxHost(installed=("docker", "nginx"), managers=("dnf",))
    provisioner, ssh = provisioner_for(host, logger)

    outcomes = provisioner.provision(connection)

    assert outcomes["docker-compose"] == "installed via dnf"
    assert not ssh.ran(r"sudo curl")
    assert not ssh.ran(r"apt-get install")


def test_all_installers_failing_is_fatal(logger, connection):
    host = FakeLinuxHost(managers=("apt-get",), broken=("apt",))
    provisioner, _ = provisioner_for(host, logger)

    with pytest.raises(ProvisioningError) as exc:
        provisioner.provision(connection)

    assert "docker" in exc.value.message
    assert "apt: exit 100" in exc.value.context
    assert "dnf: not available" in exc.value.context


def test_service_that_will_not_start_is_fatal(logger, connection):
    host = FakeLinuxHost(installed=ALL_TOOLS)
    ssh = FakeSSHService(fallback=host)
    ssh.on(r"systemctl start nginx", fail(stderr="Job for nginx.service failed"))
    provisioner = Provisioner(ssh, logger)

    with pytest.raises(ProvisioningError, match="nginx"):
        provisioner.provision(connection)


def test_upgrade_system_is_opt_in(logger, connection):
    host = FakeLinuxHost(installed=ALL_TOOLS)
    provisioner, ssh = provisioner_for(host, logger)

    provisioner.provision(connection)
    assert not ssh.ran(r"apt-get upgrade")

    provisioner.provision(connection, upgrade_system=True)
    assert ssh.ran(r"apt-get upgrade -y")
