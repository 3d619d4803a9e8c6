"""Shared fixtures for the touchless test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from touchless.agents.fixer.shell import ShellProfile
from touchless.storage.files import DeployLog

# Fix scripts in tests are Python so they run on any host.
PYTHON_SHELL = ShellProfile(
    language="Python",
    suffix=".py",
    program=sys.executable,
    argument_template='"{path}"',
)


@pytest.fixture
def deploy_log(tmp_path: Path) -> DeployLog:
    return DeployLog(tmp_path / "Logs" / "ExchangeDeploy.log")


@pytest.fixture
def python_shell() -> ShellProfile:
    return PYTHON_SHELL
