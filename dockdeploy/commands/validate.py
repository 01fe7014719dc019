"""Validate command - re-run the post-deploy checks"""

import sys

import click

from dockdeploy.base import TargetCommand
from dockdeploy.commands.options import app_options, common_options, target_options
from dockdeploy.constants import STAGE_VALIDATE
from dockdeploy.services import DeploymentValidator


class ValidateCommand(TargetCommand):
    """Check runtime, container and proxy on an existing deployment."""

    def execute(self) -> None:
        """Execute validate command."""
        target, application = self.resolve()
        logger = self.init_logger("validate")

        self.show_header(
            title="Validate Deployment",
            details={"Target": target.connection_string, "App": application.name},
        )

        connection = self.connect(target)
        validator = DeploymentValidator(self.ssh, logger)
        checks = self.stages.run(
            STAGE_VALIDATE, lambda: validator.validate(connection, application)
        )

        for check in checks:
            self.print_success(check.detail)
        self.print_log_location()


@click.command()
@target_options
@app_options
@click.option("--no-input", is_flag=True, help="Never prompt; fail on missing inputs")
@common_options
def validate(host, user, key_path, connect_timeout, app_name, remote_dir, no_input, config_path, log_dir, verbose):
    """
    Check a deployed application

    Verifies that docker is running, the container is up and nginx answers
    on port 80, all from the target itself.

    Examples:
        dockdeploy validate --config deploy.yml
    """
    overrides = {
        "host": host,
        "user": user,
        "key_path": key_path,
        "connect_timeout": connect_timeout,
        "app_name": app_name,
        "remote_dir": remote_dir,
        "log_dir": log_dir,
    }
    cmd = ValidateCommand(
        {k: v for k, v in overrides.items() if v is not None},
        config_path=config_path,
        interactive=not no_input and sys.stdin.isatty(),
        verbose=verbose,
        log_dir=log_dir,
    )
    cmd.run()
