"""Local checkout of the source repository at the requested revision."""

import os
import subprocess
from pathlib import Path
from typing import Callable
from urllib.parse import quote

from dockdeploy.constants import COMPOSE_FILE_NAMES, DEFAULT_COMMAND_TIMEOUT
from dockdeploy.exceptions import RepositoryError
from dockdeploy.logger import DeployLogger, run_with_progress
from dockdeploy.models.session import RepositorySource


class RepositoryService:
    """Clone-or-update in one idempotent operation."""

    def __init__(
        self,
        logger: DeployLogger,
        timeout: int = DEFAULT_COMMAND_TIMEOUT,
        runner: Callable[..., tuple[int, str, str]] = run_with_progress,
    ):
        self.logger = logger
        self.timeout = timeout
        self.runner = runner

    def ensure_repository(self, source: RepositorySource, local_dir: Path) -> Path:
        """
        Make local_dir a checkout of source.branch.

        The token only ever appears on the git command line; origin is left
        pointing at the token-free URL so nothing persists it.

        Raises:
            RepositoryError: if git fails or local_dir is an unrelated directory
        """
        self.logger.register_secret(source.token)
        self.logger.register_secret(quote(source.token, safe=""))

        local_dir = Path(local_dir)
        self.logger.log(f"Cloning or updating repository {source.url} ({source.branch})")

        if (local_dir / ".git").is_dir():
            self._git(
                ["git", "-C", str(local_dir), "fetch", source.authenticated_url, source.branch],
                f"Fetching {source.branch}",
            )
            self._git(
                ["git", "-C", str(local_dir), "checkout", "-B", source.branch, "FETCH_HEAD"],
                f"Checking out {source.branch}",
            )
        else:
            if local_dir.exists() and any(local_dir.iterdir()):
                raise RepositoryError(
                    f"{local_dir} exists and is not a git checkout",
                    context="Remove it or pass a different --workdir",
                )
            self._git(
                [
                    "git",
                    "clone",
                    "--branch",
                    source.branch,
                    source.authenticated_url,
                    str(local_dir),
                ],
                "Cloning repository",
            )
            self._git(
                ["git", "-C", str(local_dir), "remote", "set-url", "origin", source.url],
                "Removing credentials from origin",
            )

        self.logger.log(f"Repository at {local_dir} is on {source.branch}")
        return local_dir

    def require_deployable(self, local_dir: Path) -> str:
        """
        Return the file that makes the tree deployable.

        Raises:
            RepositoryError: if there is neither a compose definition nor a Dockerfile
        """
        local_dir = Path(local_dir)
        for name in COMPOSE_FILE_NAMES + ["Dockerfile"]:
            if (local_dir / name).is_file():
                self.logger.log(f"Found {name}")
                return name

        raise RepositoryError(
            "No Dockerfile or docker-compose.yml found",
            context=f"Looked in {local_dir.resolve()}",
        )

    def _git(self, command: list[str], description: str) -> str:
        env = dict(os.environ, GIT_TERMINAL_PROMPT="0")
        try:
            code, stdout, stderr = self.runner(
                self.logger, command, description, env=env, timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            raise RepositoryError(f"{description} timed out after {self.timeout}s")
        except FileNotFoundError:
            raise RepositoryError("git is not installed", context="Run: dockdeploy doctor")

        if code != 0:
            raise RepositoryError(
                f"{description} failed",
                context=self.logger.mask(stderr.strip()) or f"git exited with {code}",
            )
        return stdout
