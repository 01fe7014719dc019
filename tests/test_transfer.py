"""Tests for remote directory preparation and file transfer."""

import pytest

from dockdeploy.exceptions import TransferError
from dockdeploy.services.transfer_service import TransferService
from tests.fakes import fail


def test_prepares_directory_with_ownership(ssh, logger, connection):
    TransferService(ssh, logger).ensure_destination(connection, "/home/ubuntu/repo")

    assert ssh.commands[0] == (
        "sudo mkdir -p /home/ubuntu/repo && sudo chmod 755 /home/ubuntu/repo "
        "&& sudo chown ubuntu:ubuntu /home/ubuntu/repo"
    )
    assert ssh.commands[1] == "[ -w /home/ubuntu/repo ]"


def test_mkdir_failure_is_fatal(ssh, logger, connection):
    ssh.on(r"mkdir", fail(stderr="sudo: a password is required"))

    with pytest.raises(TransferError) as exc:
        TransferService(ssh, logger).ensure_destination(connection, "/home/ubuntu/repo")
    assert "password is required" in exc.value.context


def test_unwritable_directory_is_fatal(ssh, logger, connection):
    ssh.on(r"^\[ -w ", fail())

    with pytest.raises(TransferError, match="not writable"):
        TransferService(ssh, logger).ensure_destination(connection, "/home/ubuntu/repo")


def test_copies_directory_contents(ssh, logger, connection, tmp_path):
    tree = tmp_path / "repo"
    tree.mkdir()
    (tree / "Dockerfile").write_text("FROM nginx\n")

    TransferService(ssh, logger).transfer(connection, tree, "/home/ubuntu/repo")

    assert ssh.commands == [f"scp -r {tree.resolve()}/. /home/ubuntu/repo"]


def test_missing_local_tree(ssh, logger, connection, tmp_path):
    with pytest.raises(TransferError, match="does not exist"):
        TransferService(ssh, logger).transfer(connection, tmp_path / "nope", "/home/ubuntu/repo")
    assert ssh.commands == []


def test_interrupted_copy_is_fatal(ssh, logger, connection, tmp_path):
    ssh.on(r"^scp", fail(1, "scp: /home/ubuntu/repo/big.bin: No space left on device"))

    with pytest.raises(TransferError) as exc:
        TransferService(ssh, logger).transfer(connection, tmp_path, "/home/ubuntu/repo")
    assert "No space left" in exc.value.context
