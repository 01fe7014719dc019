"""Tests for config file loading, overrides and prompts."""

import pytest

from dockdeploy.core.config_loader import (
    DEPLOY_PROMPTS,
    SessionConfig,
    prompt_missing,
)
from dockdeploy.exceptions import InputValidationError

CONFIG = """\
repository:
  url: https://github.com/acme/shop.git
  branch: develop
target:
  host: 203.0.113.10
  user: ubuntu
  key_path: ~/.ssh/id_ed25519
app:
  name: shop
  port: 8080
deploy:
  cleanup: true
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "deploy.yml"
    path.write_text(CONFIG)
    return path


def test_load_flattens_sections(config_file):
    values = SessionConfig.load(config_file).values

    assert values["repo_url"] == "https://github.com/acme/shop.git"
    assert values["branch"] == "develop"
    assert values["app_name"] == "shop"
    assert values["port"] == 8080
    assert values["cleanup"] is True


def test_no_path_is_empty():
    assert SessionConfig.load(None).values == {}


def test_overrides_win_over_file(config_file):
    merged = SessionConfig.load(config_file).merge({"port": "9000", "host": None, "user": ""})

    assert merged["port"] == "9000"
    assert merged["host"] == "203.0.113.10"
    assert merged["user"] == "ubuntu"


@pytest.mark.parametrize(
    "content,message",
    [
        ("repository: [1, 2", "not valid YAML"),
        ("- just\n- a list\n", "must contain a mapping"),
        ("servers:\n  host: x\n", "Unknown section"),
        ("target:\n  hostname: x\n", "Unknown key 'target.hostname'"),
        ("target: nope\n", "must be a mapping"),
    ],
)
def test_malformed_files(tmp_path, content, message):
    path = tmp_path / "deploy.yml"
    path.write_text(content)

    with pytest.raises(InputValidationError, match=message):
        SessionConfig.load(path)


def test_missing_file(tmp_path):
    with pytest.raises(InputValidationError, match="not found"):
        SessionConfig.load(tmp_path / "missing.yml")


def test_prompts_only_for_missing_values():
    asked = []

    def ask(label, password=False, default=None):
        asked.append((label, password))
        return default or "answer"

    values = prompt_missing({"repo_url": "https://x/y.git", "host": "203.0.113.10"}, DEPLOY_PROMPTS, ask=ask)

    labels = [label for label, _ in asked]
    assert "Enter Git Repository URL" not in labels
    assert "Enter Server IP Address" not in labels
    assert ("Enter Personal Access Token", True) in asked
    assert values["branch"] == "main"
    assert values["port"] == "answer"
