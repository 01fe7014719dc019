"""
dockdeploy Services

One service per deployment stage, all driving the target through SSHService.
"""

from .ssh_service import SSHService
from .repository_service import RepositoryService
from .provisioner import Provisioner
from .transfer_service import TransferService
from .deployment_executor import DeploymentExecutor
from .proxy_configurator import ProxyConfigurator
from .deployment_validator import DeploymentValidator
from .cleanup_service import CleanupService

__all__ = [
    "SSHService",
    "RepositoryService",
    "Provisioner",
    "TransferService",
    "DeploymentExecutor",
    "ProxyConfigurator",
    "DeploymentValidator",
    "CleanupService",
]
