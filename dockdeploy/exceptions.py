"""
dockdeploy Exception Hierarchy

One exception per pipeline stage, so a failure can be traced back to the
stage that raised it.
"""

from enum import Enum
from typing import Optional


class DeployError(Exception):
    """Base exception for all dockdeploy errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class InputValidationError(DeployError):
    """Raised when session input is missing or malformed."""

    pass


class ConnectFailure(Enum):
    """Why the remote channel could not be used."""

    TIMEOUT = "timeout"
    AUTH_FAILED = "auth_failed"
    UNREACHABLE = "unreachable"


class ConnectivityError(DeployError):
    """Raised when the target cannot be reached or authentication fails."""

    def __init__(
        self,
        message: str,
        reason: ConnectFailure = ConnectFailure.UNREACHABLE,
        context: Optional[str] = None,
    ):
        self.reason = reason
        super().__init__(message, context)


class RepositoryError(DeployError):
    """Raised when the local checkout cannot be prepared."""

    pass


class ProvisioningError(DeployError):
    """Raised when no installer in the fallback chain succeeded."""

    pass


class TransferError(DeployError):
    """Raised when the destination is unusable or the copy fails."""

    pass


class DeploymentError(DeployError):
    """Raised when build/run fails or the container is not running afterwards."""

    pass


class ConfigurationError(DeployError):
    """Raised when the proxy configuration is invalid or cannot be loaded."""

    pass


class ValidationError(DeployError):
    """Raised when a post-deploy check fails."""

    pass


class CleanupError(DeployError):
    """Raised (and collected) when a cleanup step fails."""

    def __init__(self, step: str, message: str, context: Optional[str] = None):
        self.step = step
        super().__init__(message, context)
