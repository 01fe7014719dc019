"""Tests for SSHService with a patched subprocess runner."""

import subprocess
from unittest.mock import MagicMock

import pytest

from dockdeploy.exceptions import ConnectFailure, ConnectivityError
from dockdeploy.services.ssh_service import SSHService, classify_ssh_failure


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.mark.parametrize(
    "stderr,expected",
    [
        ("ubuntu@203.0.113.10: Permission denied (publickey).", ConnectFailure.AUTH_FAILED),
        ("ssh: connect to host 203.0.113.10 port 22: Connection timed out", ConnectFailure.TIMEOUT),
        ("ssh: connect to host 203.0.113.10 port 22: Connection refused", ConnectFailure.UNREACHABLE),
        ("ssh: Could not resolve hostname nowhere: Name or service not known", ConnectFailure.UNREACHABLE),
        ("some program failed", None),
    ],
)
def test_classify_ssh_failure(stderr, expected):
    assert classify_ssh_failure(stderr) == expected


class TestConnect:
    def test_success_returns_connection(self, target):
        runner = MagicMock(return_value=completed(stdout="Connection successful\n"))
        connection = SSHService(runner=runner).connect(target)

        assert connection.target == target
        argv = runner.call_args.args[0]
        assert argv[0] == "ssh"
        assert "BatchMode=yes" in argv
        assert "ConnectTimeout=10" in argv
        assert argv[-2:] == ["ubuntu@203.0.113.10", "echo Connection successful"]
        assert runner.call_args.kwargs["timeout"] == 20

    def test_auth_failure(self, target):
        runner = MagicMock(return_value=completed(255, stderr="Permission denied (publickey)."))
        with pytest.raises(ConnectivityError) as exc:
            SSHService(runner=runner).connect(target)
        assert exc.value.reason == ConnectFailure.AUTH_FAILED

    def test_timeout(self, target):
        runner = MagicMock(side_effect=subprocess.TimeoutExpired(cmd="ssh", timeout=20))
        with pytest.raises(ConnectivityError) as exc:
            SSHService(runner=runner).connect(target)
        assert exc.value.reason == ConnectFailure.TIMEOUT

    def test_unknown_failure_is_unreachable(self, target):
        runner = MagicMock(return_value=completed(1, stderr="weird"))
        with pytest.raises(ConnectivityError) as exc:
            SSHService(runner=runner).connect(target)
        assert exc.value.reason == ConnectFailure.UNREACHABLE


class TestExecute:
    def test_command_failure_is_a_result_not_an_exception(self, connection):
        runner = MagicMock(return_value=completed(1, stderr="nope"))
        result = SSHService(runner=runner).execute_command(connection, "false")

        assert result.is_failure
        assert result.stderr == "nope"
        assert result.host == "203.0.113.10"

    def test_lost_connection_raises(self, connection):
        runner = MagicMock(return_value=completed(255, stderr="Connection reset by 203.0.113.10"))
        with pytest.raises(ConnectivityError):
            SSHService(runner=runner).execute_command(connection, "docker ps")

    def test_remote_exit_255_without_ssh_diagnostics_is_a_result(self, connection):
        runner = MagicMock(return_value=completed(255, stderr="app says no"))
        result = SSHService(runner=runner).execute_command(connection, "exit 255")
        assert result.returncode == 255

    def test_script_goes_over_stdin(self, connection):
        runner = MagicMock(return_value=completed())
        SSHService(runner=runner).execute_script(connection, "set -e\necho hi\n", timeout=30)

        assert runner.call_args.args[0][-1] == "bash -s"
        assert runner.call_args.kwargs["input"] == "set -e\necho hi\n"
        assert runner.call_args.kwargs["timeout"] == 30

    def test_copy_tree_uses_recursive_scp(self, connection):
        runner = MagicMock(return_value=completed())
        SSHService(runner=runner).copy_tree(connection, "/tmp/repo/.", "/home/ubuntu/repo")

        argv = runner.call_args.args[0]
        assert argv[0] == "scp"
        assert "-r" in argv
        assert argv[-2:] == ["/tmp/repo/.", "ubuntu@203.0.113.10:/home/ubuntu/repo"]

    def test_missing_ssh_client(self, connection):
        runner = MagicMock(side_effect=FileNotFoundError("ssh"))
        with pytest.raises(ConnectivityError) as exc:
            SSHService(runner=runner).execute_command(connection, "true")
        assert exc.value.reason == ConnectFailure.UNREACHABLE
