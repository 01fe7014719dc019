"""
Deployment pipeline

Runs the stages strictly in order, recording one StepRecord per attempt.
The first fatal error halts the run (fail-fast); cleanup is the only stage
whose failures are recorded without stopping anything.
"""

from typing import Callable, Optional, TypeVar

from dockdeploy.constants import (
    STAGE_CLEANUP,
    STAGE_CONNECTIVITY,
    STAGE_DEPLOY,
    STAGE_PROVISION,
    STAGE_PROXY,
    STAGE_REPOSITORY,
    STAGE_TRANSFER,
    STAGE_VALIDATE,
)
from dockdeploy.exceptions import DeployError
from dockdeploy.logger import DeployLogger
from dockdeploy.models.results import (
    AuditTrail,
    CleanupReport,
    PipelineResult,
    StepOutcome,
    StepRecord,
)
from dockdeploy.models.session import DeploymentSession, RemoteApplication
from dockdeploy.models.ssh import RemoteTarget, SSHConnection
from dockdeploy.services import (
    CleanupService,
    DeploymentExecutor,
    DeploymentValidator,
    Provisioner,
    ProxyConfigurator,
    RepositoryService,
    SSHService,
    TransferService,
)

T = TypeVar("T")


class StageRunner:
    """Wraps each stage in a StepRecord and mirrors it to the audit log."""

    def __init__(self, logger: DeployLogger, trail: Optional[AuditTrail] = None):
        self.logger = logger
        self.trail = trail if trail is not None else AuditTrail()

    def run(
        self,
        name: str,
        action: Callable[[], T],
        judge: Optional[Callable[[T], tuple[StepOutcome, str]]] = None,
    ) -> T:
        """
        Execute one stage.

        Args:
            name: Stage name
            action: Callable doing the work; raises DeployError on fatal failure
            judge: Optional callable turning the return value into (outcome, diagnostic)

        Raises:
            DeployError: re-raised after the failure is recorded
        """
        record = StepRecord.begin(name)
        self.logger.step(name)

        try:
            value = action()
        except DeployError as e:
            self.trail.append(record.finish(StepOutcome.FAILURE, e.format_message()))
            self.logger.log_error(f"{name} failed: {e.message}", context=e.context)
            raise

        outcome, diagnostic = judge(value) if judge else (StepOutcome.SUCCESS, "")
        self.trail.append(record.finish(outcome, diagnostic))

        if outcome == StepOutcome.SUCCESS:
            self.logger.success(f"{name} completed")
        else:
            self.logger.warning(f"{name} finished with errors: {diagnostic}")
        return value


def judge_cleanup(report: CleanupReport) -> tuple[StepOutcome, str]:
    outcome = StepOutcome.SUCCESS if report.is_success else StepOutcome.FAILURE
    return outcome, report.summary()


class DeploymentPipeline:
    """Orchestrates one deployment session against one target."""

    def __init__(
        self,
        session: DeploymentSession,
        logger: DeployLogger,
        ssh: Optional[SSHService] = None,
        repository: Optional[RepositoryService] = None,
        provisioner: Optional[Provisioner] = None,
        transfer: Optional[TransferService] = None,
        executor: Optional[DeploymentExecutor] = None,
        proxy: Optional[ProxyConfigurator] = None,
        validator: Optional[DeploymentValidator] = None,
        cleanup: Optional[CleanupService] = None,
    ):
        self.session = session
        self.logger = logger
        timeout = session.command_timeout

        self.ssh = ssh or SSHService()
        self.repository = repository or RepositoryService(logger, timeout=timeout)
        self.provisioner = provisioner or Provisioner(self.ssh, logger, timeout=timeout)
        self.transfer = transfer or TransferService(self.ssh, logger, timeout=timeout)
        self.executor = executor or DeploymentExecutor(self.ssh, logger, timeout=timeout)
        self.proxy = proxy or ProxyConfigurator(self.ssh, logger)
        self.validator = validator or DeploymentValidator(self.ssh, logger)
        self.cleanup_service = cleanup or CleanupService(self.ssh, logger, self.executor)

        self.stages = StageRunner(logger)
        logger.register_secret(session.source.token)

    @property
    def trail(self) -> AuditTrail:
        return self.stages.trail

    def run(self) -> PipelineResult:
        """
        Run every stage in order.

        Raises:
            DeployError: the first fatal stage failure
        """
        session = self.session
        application = session.application
        target = session.target

        self.stages.run(STAGE_REPOSITORY, self._checkout)
        connection = self.stages.run(STAGE_CONNECTIVITY, lambda: self.connect(target))

        self.stages.run(
            STAGE_PROVISION,
            lambda: self.provisioner.provision(connection, upgrade_system=session.upgrade_system),
        )
        self.stages.run(STAGE_TRANSFER, lambda: self._transfer(connection, application))
        self.stages.run(STAGE_DEPLOY, lambda: self.executor.deploy(connection, application))
        self.stages.run(STAGE_PROXY, lambda: self.proxy.configure(connection, application))
        self.stages.run(STAGE_VALIDATE, lambda: self.validator.validate(connection, application))

        report = None
        if session.cleanup:
            report = self.stages.run(
                STAGE_CLEANUP,
                lambda: self.cleanup_service.cleanup(connection, application),
                judge=judge_cleanup,
            )

        return PipelineResult(records=self.trail.records, cleanup=report)

    def connect(self, target: RemoteTarget) -> SSHConnection:
        self.logger.log(f"Testing SSH connectivity to {target.connection_string}")
        connection = self.ssh.connect(target)
        self.logger.log("Connection successful")
        return connection

    def _checkout(self) -> None:
        local_dir = self.repository.ensure_repository(self.session.source, self.session.local_dir)
        self.repository.require_deployable(local_dir)

    def _transfer(self, connection: SSHConnection, application: RemoteApplication) -> None:
        self.transfer.ensure_destination(connection, application.remote_dir)
        self.transfer.transfer(connection, self.session.local_dir, application.remote_dir)
