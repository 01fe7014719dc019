"""Cleanup command - remove a deployment from the target"""

import sys

import click

from dockdeploy.base import TargetCommand
from dockdeploy.commands.options import app_options, common_options, target_options
from dockdeploy.constants import STAGE_CLEANUP, SUCCESS_CLEANED_UP
from dockdeploy.core.pipeline import judge_cleanup
from dockdeploy.services import CleanupService


class CleanupCommand(TargetCommand):
    """
    Tear down a deployment without redeploying it.

    Cleanup errors are reported as warnings; only a lost connection is fatal.
    """

    def execute(self) -> None:
        """Execute cleanup command."""
        target, application = self.resolve()
        logger = self.init_logger("cleanup")

        self.show_header(
            title="Clean Up Deployment",
            details={
                "Target": target.connection_string,
                "App": application.name,
                "Directory": application.remote_dir,
            },
        )

        connection = self.connect(target)
        service = CleanupService(self.ssh, logger)
        report = self.stages.run(
            STAGE_CLEANUP,
            lambda: service.cleanup(connection, application),
            judge=judge_cleanup,
        )

        if not report.is_success:
            for error in report.errors:
                self.print_warning(error.format_message())
            self.print_warning(f"Cleanup finished with errors: {report.summary()}")
        else:
            logger.log(SUCCESS_CLEANED_UP)
            self.print_success(SUCCESS_CLEANED_UP)
        self.print_log_location()


@click.command()
@target_options
@app_options
@click.option("--no-input", is_flag=True, help="Never prompt; fail on missing inputs")
@common_options
def cleanup(host, user, key_path, connect_timeout, app_name, remote_dir, no_input, config_path, log_dir, verbose):
    """
    Remove a deployed application from a remote host

    Stops the compose project or container, deletes the project directory
    and the nginx proxy fragment, then reloads nginx.

    Examples:
        dockdeploy cleanup --host 203.0.113.10 --user ubuntu --key ~/.ssh/id_ed25519
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
    cmd = CleanupCommand(
        {k: v for k, v in overrides.items() if v is not None},
        config_path=config_path,
        interactive=not no_input and sys.stdin.isatty(),
        verbose=verbose,
        log_dir=log_dir,
    )
    cmd.run()
