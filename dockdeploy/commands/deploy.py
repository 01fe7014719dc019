"""Deploy command - check out, provision, ship, run, proxy and validate"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import click
from rich.prompt import Prompt

from dockdeploy.base import BaseCommand
from dockdeploy.commands.options import env_name, app_options, common_options, target_options
from dockdeploy.constants import SUCCESS_DEPLOYED
from dockdeploy.core.config_loader import DEPLOY_PROMPTS, SessionConfig, prompt_missing
from dockdeploy.core.pipeline import DeploymentPipeline
from dockdeploy.models.session import DeploymentSession
from dockdeploy.services import SSHService
from dockdeploy.ui_components import steps_table
from dockdeploy.utils import as_text


@dataclass
class DeployOptions:
    """Options for deploy command."""

    config_path: Optional[str] = None
    overrides: Dict[str, Any] = field(default_factory=dict)
    interactive: bool = True


def resolve_inputs(
    config_path: Optional[str],
    overrides: Dict[str, Any],
    prompts,
    interactive: bool,
    ask: Callable[..., str],
) -> Dict[str, Any]:
    """CLI/env overrides, then the config file, then interactive prompts."""
    values = SessionConfig.load(Path(config_path) if config_path else None).merge(overrides)
    if interactive:
        values = prompt_missing(values, prompts, ask=ask)
    return values


class DeployCommand(BaseCommand):
    """
    Deploy the application to the target.

    Features:
    - Fail-fast pipeline with one audit record per stage
    - Optional cleanup after validation
    """

    def __init__(
        self,
        options: DeployOptions,
        verbose: bool = False,
        log_dir: Optional[str] = None,
        ssh: Optional[SSHService] = None,
        ask: Callable[..., str] = Prompt.ask,
        console=None,
    ):
        super().__init__(verbose=verbose, log_dir=log_dir, console=console)
        self.options = options
        self.ssh = ssh
        self.ask = ask

    def build_session(self, values: Dict[str, Any]) -> DeploymentSession:
        return DeploymentSession.from_inputs(
            repo_url=as_text(values.get("repo_url")),
            token=as_text(values.get("token")),
            user=as_text(values.get("user")),
            host=as_text(values.get("host")),
            key_path=as_text(values.get("key_path")),
            port=values.get("port"),
            branch=as_text(values.get("branch")),
            app_name=as_text(values.get("app_name")),
            remote_dir=as_text(values.get("remote_dir")),
            local_dir=as_text(values.get("local_dir")),
            cleanup=bool(values.get("cleanup", False)),
            connect_timeout=values.get("connect_timeout"),
            command_timeout=values.get("command_timeout"),
            upgrade_system=bool(values.get("upgrade_system", False)),
        )

    def execute(self) -> None:
        """Execute deploy command."""
        values = resolve_inputs(
            self.options.config_path,
            self.options.overrides,
            DEPLOY_PROMPTS,
            self.options.interactive,
            self.ask,
        )
        if values.get("log_dir") and "log_dir" not in self.options.overrides:
            self.log_dir = Path(str(values["log_dir"]))

        logger = self.init_logger("deploy")
        logger.register_secret(as_text(values.get("token")))

        # Invalid input stops here, before any connection is attempted
        session = self.build_session(values)

        self.show_header(
            title="Deploy Application",
            details={
                "Repository": f"{session.source.url} ({session.source.branch})",
                "Target": session.target.connection_string,
                "App": f"{session.application.name} on port {session.application.port}",
            },
        )

        pipeline = DeploymentPipeline(session, logger, ssh=self.ssh)
        try:
            result = pipeline.run()
        finally:
            if not self.verbose:
                self.console.print()
                self.console.print(steps_table(pipeline.trail.records))

        if result.cleanup and not result.cleanup.is_success:
            self.print_warning(f"Cleanup finished with errors: {result.cleanup.summary()}")

        logger.log(SUCCESS_DEPLOYED)
        self.print_success(SUCCESS_DEPLOYED)
        self.print_log_location()


@click.command()
@click.option("--repo-url", envvar=env_name("REPO_URL"), help="Git repository URL")
@click.option("--token", envvar=env_name("TOKEN"), help="Personal access token for the repository")
@click.option("--branch", envvar=env_name("BRANCH"), help="Branch to deploy (default: main)")
@target_options
@click.option("--port", envvar=env_name("APP_PORT"), help="Application port")
@app_options
@click.option("--workdir", "local_dir", envvar=env_name("WORKDIR"), help="Local checkout directory (default: ./repo)")
@click.option("--command-timeout", envvar=env_name("COMMAND_TIMEOUT"), help="Seconds allowed per remote command")
@click.option("--cleanup", is_flag=True, help="Tear everything down after validation")
@click.option("--upgrade-system", is_flag=True, help="Upgrade system packages before provisioning")
@click.option("--no-input", is_flag=True, help="Never prompt; fail on missing inputs")
@common_options
def deploy(
    repo_url,
    token,
    branch,
    host,
    user,
    key_path,
    connect_timeout,
    port,
    app_name,
    remote_dir,
    local_dir,
    command_timeout,
    cleanup,
    upgrade_system,
    no_input,
    config_path,
    log_dir,
    verbose,
):
    """
    Deploy an application to a remote host

    Checks out the repository, installs docker, compose and nginx on the
    target, copies the project, builds and starts it, puts nginx in front
    of it and validates the result.

    Examples:
        # Prompt for anything not given
        dockdeploy deploy

        # Fully scripted, then tear down
        dockdeploy deploy --config deploy.yml --cleanup --no-input
    """
    overrides = {
        "repo_url": repo_url,
        "token": token,
        "branch": branch,
        "host": host,
        "user": user,
        "key_path": key_path,
        "connect_timeout": connect_timeout,
        "port": port,
        "app_name": app_name,
        "remote_dir": remote_dir,
        "local_dir": local_dir,
        "command_timeout": command_timeout,
        "cleanup": cleanup or None,
        "upgrade_system": upgrade_system or None,
        "log_dir": log_dir,
    }
    options = DeployOptions(
        config_path=config_path,
        overrides={k: v for k, v in overrides.items() if v is not None},
        interactive=not no_input and sys.stdin.isatty(),
    )
    cmd = DeployCommand(options, verbose=verbose, log_dir=log_dir)
    cmd.run()
