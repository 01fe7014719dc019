"""Tests for the local repository checkout."""

from pathlib import Path

import pytest

from dockdeploy.exceptions import RepositoryError
from dockdeploy.models.session import RepositorySource
from dockdeploy.services.repository_service import RepositoryService

SOURCE = RepositorySource("https://github.com/acme/shop.git", "ghp_secret123", "develop")


class FakeGit:
    """Records git invocations; clone creates the checkout."""

    def __init__(self, returncode=0, stderr=""):
        self.returncode = returncode
        self.stderr = stderr
        self.calls = []

    def __call__(self, logger, command, description, env=None, timeout=None):
        self.calls.append((command, env))
        if self.returncode == 0 and command[1] == "clone":
            (Path(command[-1]) / ".git").mkdir(parents=True)
        return self.returncode, "", self.stderr

    @property
    def commands(self):
        return [command for command, _ in self.calls]


def test_fresh_clone_does_not_keep_token(logger, tmp_path):
    git = FakeGit()
    local = tmp_path / "repo"

    RepositoryService(logger, runner=git).ensure_repository(SOURCE, local)

    assert git.commands[0] == [
        "git",
        "clone",
        "--branch",
        "develop",
        "https://ghp_secret123@github.com/acme/shop.git",
        str(local),
    ]
    assert git.commands[1] == [
        "git", "-C", str(local), "remote", "set-url", "origin", "https://github.com/acme/shop.git",
    ]
    assert all(env["GIT_TERMINAL_PROMPT"] == "0" for _, env in git.calls)


def test_existing_checkout_is_updated(logger, tmp_path):
    local = tmp_path / "repo"
    (local / ".git").mkdir(parents=True)
    git = FakeGit()

    RepositoryService(logger, runner=git).ensure_repository(SOURCE, local)

    assert [c[3] for c in git.commands] == ["fetch", "checkout"]
    assert git.commands[1][-3:] == ["-B", "develop", "FETCH_HEAD"]


def test_unrelated_directory_is_refused(logger, tmp_path):
    local = tmp_path / "repo"
    local.mkdir()
    (local / "notes.txt").write_text("hello")
    git = FakeGit()

    with pytest.raises(RepositoryError, match="not a git checkout"):
        RepositoryService(logger, runner=git).ensure_repository(SOURCE, local)
    assert git.calls == []


def test_git_failure_masks_token(logger, tmp_path):
    git = FakeGit(128, "fatal: could not read from https://ghp_secret123@github.com/acme/shop.git")

    with pytest.raises(RepositoryError) as exc:
        RepositoryService(logger, runner=git).ensure_repository(SOURCE, tmp_path / "repo")

    assert "ghp_secret123" not in exc.value.context
    assert "***" in exc.value.context


def test_missing_git(logger, tmp_path):
    def runner(*args, **kwargs):
        raise FileNotFoundError("git")

    with pytest.raises(RepositoryError, match="git is not installed"):
        RepositoryService(logger, runner=runner).ensure_repository(SOURCE, tmp_path / "repo")


class TestRequireDeployable:
    def test_dockerfile(self, logger, tmp_path):
        (tmp_path / "Dockerfile").write_text("FROM python:3.12\n")
        assert RepositoryService(logger).require_deployable(tmp_path) == "Dockerfile"

    def test_compose_file_preferred(self, logger, tmp_path):
        (tmp_path / "Dockerfile").write_text("FROM python:3.12\n")
        (tmp_path / "docker-compose.yml").write_text("services: {}\n")
        assert RepositoryService(logger).require_deployable(tmp_path) == "docker-compose.yml"

    def test_nothing_to_deploy(self, logger, tmp_path):
        with pytest.raises(RepositoryError, match="No Dockerfile or docker-compose.yml found"):
            RepositoryService(logger).require_deployable(tmp_path)
