"""Click options shared by the commands that talk to a target."""

import click

from dockdeploy.constants import ENV_PREFIX


def env_name(name: str) -> str:
    return f"{ENV_PREFIX}{name}"


def target_options(func):
    """--host/--user/--key/--connect-timeout"""
    options = [
        click.option("--host", envvar=env_name("HOST"), help="Server IP address or hostname"),
        click.option("--user", envvar=env_name("USER"), help="Remote server username"),
        click.option("--key", "key_path", envvar=env_name("KEY_PATH"), help="SSH private key path"),
        click.option(
            "--connect-timeout",
            envvar=env_name("CONNECT_TIMEOUT"),
            help="Seconds to wait for the SSH connection",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def app_options(func):
    """--app-name/--remote-dir"""
    options = [
        click.option("--app-name", envvar=env_name("APP_NAME"), help="Container name (default: myapp)"),
        click.option(
            "--remote-dir",
            envvar=env_name("REMOTE_DIR"),
            help="Project directory on the target (default: /home/<user>/repo)",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def common_options(func):
    """--config/--log-dir/--verbose"""
    options = [
        click.option(
            "--config",
            "config_path",
            type=click.Path(dir_okay=False),
            envvar=env_name("CONFIG"),
            help="YAML file with session inputs",
        ),
        click.option("--log-dir", envvar=env_name("LOG_DIR"), help="Directory for the audit log"),
        click.option("--verbose", "-v", is_flag=True, help="Show all command output"),
    ]
    for option in reversed(options):
        func = option(func)
    return func
