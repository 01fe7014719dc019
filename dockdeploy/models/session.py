"""
Deployment Session Models

The unit of work for one invocation: where the source comes from, which
host receives it, and how the application is exposed there. All values are
validated up front, before any remote operation begins.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional, Union
from urllib.parse import quote

from dockdeploy.constants import (
    DEFAULT_APP_NAME,
    DEFAULT_BRANCH,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_LOCAL_DIR,
    DEFAULT_REMOTE_DIR_FORMAT,
    NGINX_CONF_DIR,
    SSH_CONNECTION_TIMEOUT,
)
from dockdeploy.exceptions import InputValidationError
from dockdeploy.models.results import ValidationResult
from dockdeploy.models.ssh import RemoteTarget

# Also used as image tag and compose project name, which must be lowercase
CONTAINER_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")
PORT_PATTERN = re.compile(r"^[0-9]+$")
MAX_PORT = 65535


@dataclass(frozen=True)
class RepositorySource:
    """Source repository locator and revision."""

    url: str
    token: str = field(repr=False)
    branch: str = DEFAULT_BRANCH

    @property
    def authenticated_url(self) -> str:
        """Repository URL carrying the access token (https/http only)."""
        for scheme in ("https://", "http://"):
            if self.url.startswith(scheme):
                rest = self.url[len(scheme):]
                return f"{scheme}{quote(self.token, safe='')}@{rest}"
        return self.url


@dataclass(frozen=True)
class RemoteApplication:
    """How the application is named, exposed and stored on the target."""

    name: str
    remote_dir: str
    port: Optional[int] = None

    @property
    def proxy_config_path(self) -> str:
        """The nginx fragment owned by this application."""
        return f"{NGINX_CONF_DIR}/{self.name}.conf"


@dataclass(frozen=True)
class DeploymentSession:
    """Immutable inputs for one deployment run."""

    source: RepositorySource
    target: RemoteTarget
    application: RemoteApplication
    cleanup: bool = False
    local_dir: Path = Path(DEFAULT_LOCAL_DIR)
    command_timeout: int = DEFAULT_COMMAND_TIMEOUT
    upgrade_system: bool = False

    @classmethod
    def from_inputs(
        cls,
        repo_url: Optional[str],
        token: Optional[str],
        user: Optional[str],
        host: Optional[str],
        key_path: Optional[str],
        port: Union[str, int, None],
        branch: Optional[str] = None,
        app_name: Optional[str] = None,
        remote_dir: Optional[str] = None,
        local_dir: Optional[str] = None,
        cleanup: bool = False,
        connect_timeout: Union[str, int, None] = None,
        command_timeout: Union[str, int, None] = None,
        upgrade_system: bool = False,
    ) -> "DeploymentSession":
        """
        Validate raw user input and build a session.

        Raises:
            InputValidationError: listing every problem found
        """
        result = ValidationResult()
        _require(result, "repository URL", repo_url)
        _require(result, "access token", token)

        target = build_target(
            host, user, key_path, connect_timeout=connect_timeout, result=result
        )
        application = build_application(
            user,
            app_name,
            port=port,
            remote_dir=remote_dir,
            require_port=True,
            result=result,
        )
        timeout = _parse_positive_int(
            result, "command timeout", command_timeout, DEFAULT_COMMAND_TIMEOUT
        )

        if result.has_errors:
            raise InputValidationError(
                "Invalid deployment input", context="; ".join(result.errors)
            )

        return cls(
            source=RepositorySource(
                url=repo_url.strip(),
                token=token.strip(),
                branch=(branch or "").strip() or DEFAULT_BRANCH,
            ),
            target=target,
            application=application,
            cleanup=bool(cleanup),
            local_dir=Path(local_dir or DEFAULT_LOCAL_DIR),
            command_timeout=timeout,
            upgrade_system=bool(upgrade_system),
        )


def parse_port(value: Union[str, int, None]) -> int:
    """
    Parse an application port.

    Raises:
        InputValidationError: if the value is empty, not numeric or out of range
    """
    result = ValidationResult()
    port = _parse_port(result, value)
    if result.has_errors:
        raise InputValidationError(result.errors[0])
    return port


def build_target(
    host: Optional[str],
    user: Optional[str],
    key_path: Optional[str],
    connect_timeout: Union[str, int, None] = None,
    result: Optional[ValidationResult] = None,
) -> RemoteTarget:
    """
    Build a RemoteTarget from raw input.

    When a ValidationResult is passed, errors are collected there instead of
    raised so callers can report every problem at once.
    """
    collect = result is not None
    result = result if collect else ValidationResult()

    _require(result, "remote username", user, no_spaces=True)
    _require(result, "remote address", host, no_spaces=True)
    _require(result, "SSH key path", key_path)
    timeout = _parse_positive_int(
        result, "connect timeout", connect_timeout, SSH_CONNECTION_TIMEOUT
    )

    if not collect and result.has_errors:
        raise InputValidationError(
            "Invalid target input", context="; ".join(result.errors)
        )

    return RemoteTarget(
        host=(host or "").strip(),
        user=(user or "").strip(),
        key_path=(key_path or "").strip(),
        connect_timeout=timeout,
    )


def build_application(
    user: Optional[str],
    app_name: Optional[str],
    port: Union[str, int, None] = None,
    remote_dir: Optional[str] = None,
    require_port: bool = False,
    result: Optional[ValidationResult] = None,
) -> RemoteApplication:
    """Build a RemoteApplication from raw input (see build_target for result)."""
    collect = result is not None
    result = result if collect else ValidationResult()

    name = (app_name or "").strip() or DEFAULT_APP_NAME
    if not CONTAINER_NAME_PATTERN.match(name):
        result.add_error(
            f"App name '{name}' is not a valid container name "
            "(lowercase letters, digits, '_', '-')"
        )

    parsed_port = None
    if require_port or (port not in (None, "")):
        parsed_port = _parse_port(result, port)

    directory = (remote_dir or "").strip()
    if not directory:
        directory = DEFAULT_REMOTE_DIR_FORMAT.format(user=(user or "").strip())
    directory = _validate_remote_dir(result, directory)

    if not collect and result.has_errors:
        raise InputValidationError(
            "Invalid application input", context="; ".join(result.errors)
        )

    return RemoteApplication(name=name, remote_dir=directory, port=parsed_port)


def _require(
    result: ValidationResult, label: str, value: Optional[str], no_spaces: bool = False
) -> None:
    if value is None or not str(value).strip():
        result.add_error(f"{label} is required")
    elif no_spaces and any(c.isspace() for c in str(value).strip()):
        result.add_error(f"{label} must not contain whitespace")


def _parse_port(result: ValidationResult, value: Union[str, int, None]) -> int:
    if isinstance(value, bool):
        result.add_error("Port must be a number")
        return 0
    if isinstance(value, int):
        text = str(value)
    else:
        text = (value or "").strip()

    if not text:
        result.add_error("application port is required")
        return 0
    if not PORT_PATTERN.match(text):
        result.add_error(f"Port must be a number (got '{text}')")
        return 0

    port = int(text)
    if port < 1 or port > MAX_PORT:
        result.add_error(f"Port must be between 1 and {MAX_PORT} (got {port})")
        return 0
    return port


def _parse_positive_int(
    result: ValidationResult, label: str, value: Union[str, int, None], default: int
) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        result.add_error(f"{label} must be a whole number of seconds")
        return default
    if number <= 0:
        result.add_error(f"{label} must be positive")
        return default
    return number


def _validate_remote_dir(result: ValidationResult, directory: str) -> str:
    path = PurePosixPath(directory)
    if not path.is_absolute():
        result.add_error(f"Remote directory must be absolute (got '{directory}')")
    elif str(path) == "/" or ".." in path.parts:
        result.add_error(f"Refusing to use '{directory}' as remote directory")
    elif any(c.isspace() for c in directory):
        result.add_error("Remote directory must not contain whitespace")
    return str(path)
