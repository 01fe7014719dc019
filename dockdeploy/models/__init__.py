"""
dockdeploy Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .results import (
    AuditTrail,
    CheckResult,
    CleanupReport,
    PipelineResult,
    SSHResult,
    StepOutcome,
    StepRecord,
    ValidationResult,
)
from .session import (
    DeploymentSession,
    RemoteApplication,
    RepositorySource,
    build_application,
    build_target,
    parse_port,
)
from .ssh import (
    RemoteTarget,
    SSHConnection,
)

__all__ = [
    # Results
    "AuditTrail",
    "CheckResult",
    "CleanupReport",
    "PipelineResult",
    "SSHResult",
    "StepOutcome",
    "StepRecord",
    "ValidationResult",
    # Session
    "DeploymentSession",
    "RemoteApplication",
    "RepositorySource",
    "build_application",
    "build_target",
    "parse_port",
    # SSH
    "RemoteTarget",
    "SSHConnection",
]
