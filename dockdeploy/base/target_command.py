"""
Target Command Base Class

Base class for commands that act on an already deployed target without a
full deployment session (cleanup, validate).
"""

from pathlib import Path
from typing import Any, Callable, Dict, Optional

from rich.prompt import Prompt

from dockdeploy.base.base_command import BaseCommand
from dockdeploy.constants import STAGE_CONNECTIVITY
from dockdeploy.core.config_loader import TARGET_PROMPTS, SessionConfig, prompt_missing
from dockdeploy.core.pipeline import StageRunner
from dockdeploy.exceptions import InputValidationError
from dockdeploy.models.results import ValidationResult
from dockdeploy.models.session import RemoteApplication, build_application, build_target
from dockdeploy.models.ssh import RemoteTarget, SSHConnection
from dockdeploy.services import SSHService
from dockdeploy.utils import as_text


class TargetCommand(BaseCommand):
    """
    Base class for target-only commands.

    Provides:
    - Input resolution (options, env, config file, prompts)
    - Target/application validation
    - A recorded connectivity stage
    """

    def __init__(
        self,
        overrides: Dict[str, Any],
        config_path: Optional[str] = None,
        interactive: bool = True,
        verbose: bool = False,
        log_dir: Optional[str] = None,
        ssh: Optional[SSHService] = None,
        ask: Callable[..., str] = Prompt.ask,
        console=None,
    ):
        super().__init__(verbose=verbose, log_dir=log_dir, console=console)
        self.overrides = overrides
        self.config_path = config_path
        self.interactive = interactive
        self.ssh = ssh or SSHService()
        self.ask = ask
        self.stages: Optional[StageRunner] = None

    def resolve(self) -> tuple[RemoteTarget, RemoteApplication]:
        """
        Resolve and validate the target and application.

        Raises:
            InputValidationError: listing every problem found
        """
        values = SessionConfig.load(
            Path(self.config_path) if self.config_path else None
        ).merge(self.overrides)
        if self.interactive:
            values = prompt_missing(values, TARGET_PROMPTS, ask=self.ask)
        if values.get("log_dir") and "log_dir" not in self.overrides:
            self.log_dir = Path(str(values["log_dir"]))

        result = ValidationResult()
        user = as_text(values.get("user"))
        target = build_target(
            as_text(values.get("host")),
            user,
            as_text(values.get("key_path")),
            connect_timeout=values.get("connect_timeout"),
            result=result,
        )
        application = build_application(
            user,
            as_text(values.get("app_name")),
            port=values.get("port"),
            remote_dir=as_text(values.get("remote_dir")),
            result=result,
        )
        if result.has_errors:
            raise InputValidationError("Invalid target input", context="; ".join(result.errors))
        return target, application

    def connect(self, target: RemoteTarget) -> SSHConnection:
        """Open the channel as a recorded stage."""
        if self.stages is None:
            self.stages = StageRunner(self.logger)
        return self.stages.run(STAGE_CONNECTIVITY, lambda: self.ssh.connect(target))
