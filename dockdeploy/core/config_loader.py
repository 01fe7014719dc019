"""Session input loading: YAML file, CLI/env overrides and interactive prompts"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

import yaml
from rich.prompt import Prompt

from dockdeploy.constants import DEFAULT_BRANCH
from dockdeploy.exceptions import InputValidationError

# (section, key) in the YAML file -> session input name
FIELD_MAP = {
    ("repository", "url"): "repo_url",
    ("repository", "token"): "token",
    ("repository", "branch"): "branch",
    ("target", "host"): "host",
    ("target", "user"): "user",
    ("target", "key_path"): "key_path",
    ("target", "connect_timeout"): "connect_timeout",
    ("app", "name"): "app_name",
    ("app", "port"): "port",
    ("app", "remote_dir"): "remote_dir",
    ("deploy", "workdir"): "local_dir",
    ("deploy", "command_timeout"): "command_timeout",
    ("deploy", "cleanup"): "cleanup",
    ("deploy", "upgrade_system"): "upgrade_system",
    ("deploy", "log_dir"): "log_dir",
}
SECTIONS = sorted({section for section, _ in FIELD_MAP})


@dataclass
class PromptField:
    """An input the operator is asked for when nothing else supplied it."""

    name: str
    label: str
    secret: bool = False
    default: Optional[str] = None


DEPLOY_PROMPTS = [
    PromptField("repo_url", "Enter Git Repository URL"),
    PromptField("token", "Enter Personal Access Token", secret=True),
    PromptField("branch", f"Enter Branch name (default: {DEFAULT_BRANCH})", default=DEFAULT_BRANCH),
    PromptField("user", "Enter Remote Server Username"),
    PromptField("host", "Enter Server IP Address"),
    PromptField("key_path", "Enter SSH Key Path"),
    PromptField("port", "Enter Application Port"),
]

TARGET_PROMPTS = [
    PromptField("user", "Enter Remote Server Username"),
    PromptField("host", "Enter Server IP Address"),
    PromptField("key_path", "Enter SSH Key Path"),
]


class SessionConfig:
    """Flat mapping of session input name -> value, loaded from YAML"""

    def __init__(self, values: Optional[Dict[str, Any]] = None, path: Optional[Path] = None):
        self.values: Dict[str, Any] = dict(values or {})
        self.path = path

    @classmethod
    def load(cls, path: Optional[Path]) -> "SessionConfig":
        """
        Load a deployment config file.

        Example:
            repository:
              url: https://github.com/acme/shop.git
              branch: main
            target:
              host: 203.0.113.10
              user: ubuntu
              key_path: ~/.ssh/id_ed25519
            app:
              name: shop
              port: 8080

        Raises:
            InputValidationError: if the file is unreadable or malformed
        """
        if path is None:
            return cls()

        path = Path(path).expanduser()
        try:
            with open(path, "r") as f:
                raw = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise InputValidationError(f"Config file {path} not found")
        except yaml.YAMLError as e:
            raise InputValidationError(f"Config file {path} is not valid YAML", context=str(e))

        return cls(cls._flatten(raw, path), path=path)

    @staticmethod
    def _flatten(raw: Any, path: Path) -> Dict[str, Any]:
        if not isinstance(raw, dict):
            raise InputValidationError(f"Config file {path} must contain a mapping")

        unknown = [key for key in raw if key not in SECTIONS]
        if unknown:
            raise InputValidationError(
                f"Unknown section(s) in {path}: {', '.join(map(str, unknown))}",
                context=f"Valid sections: {', '.join(SECTIONS)}",
            )

        values = {}
        for section, body in raw.items():
            if body is None:
                continue
            if not isinstance(body, dict):
                raise InputValidationError(f"Section '{section}' in {path} must be a mapping")
            for key, value in body.items():
                name = FIELD_MAP.get((section, key))
                if name is None:
                    raise InputValidationError(f"Unknown key '{section}.{key}' in {path}")
                values[name] = value
        return values

    def merge(self, overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Overrides (CLI options, env vars) win over file values when set."""
        merged = dict(self.values)
        for name, value in overrides.items():
            if value is None or value == "":
                continue
            merged[name] = value
        return merged


def prompt_missing(
    values: Dict[str, Any],
    fields: Iterable[PromptField],
    ask: Callable[..., str] = Prompt.ask,
) -> Dict[str, Any]:
    """Ask for every field that has no value yet; returns a new mapping."""
    resolved = dict(values)
    for field in fields:
        current = resolved.get(field.name)
        if current is not None and str(current).strip():
            continue
        answer = ask(field.label, password=field.secret, default=field.default)
        resolved[field.name] = answer if answer is not None else ""
    return resolved
