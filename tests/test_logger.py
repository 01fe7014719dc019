"""Tests for the audit log."""

import re
from datetime import datetime

from dockdeploy.logger import DeployLogger
from tests.conftest import read_log

LINE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[[A-Z]+\] ")


def test_daily_file_name(logger):
    assert logger.log_path.name == datetime.now().strftime("deploy_%Y%m%d.log")


def test_every_line_is_timestamped(logger, log_dir):
    logger.step("Connectivity check")
    logger.success("Connectivity check completed")
    logger.warning("slow host")
    logger.log_output("line one\nline two", "stdout")
    logger.log_error("boom", context="ctx")

    lines = read_log(log_dir).splitlines()
    assert lines
    assert all(LINE.match(line) for line in lines)
    assert any("[OUTPUT] [stdout] line two" in line for line in lines)
    assert any("[ERROR] Context: ctx" in line for line in lines)


def test_appends_across_sessions(log_dir, console):
    first = DeployLogger("deploy", log_dir=log_dir, console_=console)
    first.log("first session")
    first.close()

    second = DeployLogger("cleanup", log_dir=log_dir, console_=console)
    second.log("second session")
    second.close()

    content = read_log(log_dir)
    assert "first session" in content
    assert "second session" in content
    assert content.index("first session") < content.index("second session")
    assert "deploy finished: SUCCESS" in content


def test_secrets_are_masked_everywhere(logger, log_dir, console):
    logger.register_secret("hunter2")
    logger.log("token hunter2")
    logger.log_output("remote: https://hunter2@github.com", "stderr")
    logger.log_error("failed with hunter2", context="url hunter2")

    assert "hunter2" not in read_log(log_dir)
    assert "hunter2" not in console.file.getvalue()


def test_ansi_codes_are_stripped(logger, log_dir):
    logger.log_output("\x1b[31mred\x1b[0m", "stdout")
    assert "\x1b" not in read_log(log_dir)


def test_close_marks_failure(log_dir, console):
    deploy_logger = DeployLogger("deploy", log_dir=log_dir, console_=console)
    deploy_logger.log_error("stage failed")
    deploy_logger.close()

    assert "deploy finished: FAILED" in read_log(log_dir)


def test_sensitive_assignments_are_masked(logger, log_dir):
    logger.log("env GITHUB_TOKEN=abc123 DB_PASSWORD=pw COMPOSE_PROJECT_NAME=myapp")

    content = read_log(log_dir)
    assert "GITHUB_TOKEN=***" in content
    assert "DB_PASSWORD=***" in content
    assert "COMPOSE_PROJECT_NAME=myapp" in content


def test_context_manager_logs_unhandled_errors(log_dir, console):
    try:
        with DeployLogger("deploy", log_dir=log_dir, console_=console):
            raise RuntimeError("disk full")
    except RuntimeError:
        pass

    content = read_log(log_dir)
    assert "ERROR: disk full" in content
    assert "deploy finished: FAILED" in content
