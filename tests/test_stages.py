"""Tests for the Exchange deployment stage recipes."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from touchless.agents.fixer.shell import restart_command
from touchless.deployment import STAGE_NAMES, DeploymentParams, ExchangeDeployment, build_exchange_stages
from touchless.progress import RecordingProgressReporter


@pytest.fixture
def params() -> DeploymentParams:
    return DeploymentParams(
        domain_name="corp.example.com",
        netbios_name="CORP",
        dsrm_password="S3cret!Dsrm",
        exchange_setup_path=r"C:\Setup-Software\Exchange",
        organization_name="Example Org",
    )


@pytest.fixture
def deployment(params: DeploymentParams, tmp_path: Path):
    runner = MagicMock()
    progress = RecordingProgressReporter()
    return ExchangeDeployment(params, runner, progress, users_dir=tmp_path / "Desktop", user_count=3)


def _commands(runner: MagicMock) -> list[tuple[str, str]]:
    return [cmd for call in runner.run_commands.call_args_list for cmd in call.args[1]]


def test_stage_names_and_order(params):
    stages = build_exchange_stages(params, MagicMock())

    assert [s.name for s in stages] == list(STAGE_NAMES)
    assert STAGE_NAMES[0] == "OptimizeSystem"
    assert STAGE_NAMES[-1] == "Finalize"
    assert len(STAGE_NAMES) == 10


def test_system_config_sets_timezone_and_rdp(deployment):
    deployment.configure_system()

    commands = _commands(deployment.runner)
    assert commands[0] == ("tzutil", '/s "Eastern Standard Time"')
    assert "fDenyTSConnections" in commands[1][1]


def test_ad_forest_redacts_dsrm_password(deployment):
    deployment.configure_ad()

    call = deployment.runner.run_commands.call_args
    assert call.args[0] == "ADDSForest"
    program, arguments = call.args[1][0]
    assert program == "powershell.exe"
    assert "Install-ADDSForest -DomainName 'corp.example.com'" in arguments
    assert "-DomainNetbiosName 'CORP'" in arguments
    assert call.kwargs["redact"] == ["S3cret!Dsrm"]


def test_prereqs_installs_chocolatey_packages(deployment):
    deployment.install_prereqs()

    (_, arguments), = _commands(deployment.runner)
    assert "choco install netfx-4.8" in arguments


def test_user_generation_writes_credentials(deployment, tmp_path):
    deployment.generate_users()

    lines = (tmp_path / "Desktop" / "users.txt").read_text(encoding="utf-8").splitlines()
    assert [line.split(":")[0] for line in lines] == ["user1", "user2", "user3"]
    passwords = [line.split(":")[1] for line in lines]
    assert all(len(p) == 12 for p in passwords)

    call = deployment.runner.run_commands.call_args
    assert len(call.args[1]) == 3
    assert call.kwargs["redact"] == passwords


def test_user_generation_with_zero_users_runs_nothing(params, tmp_path):
    runner = MagicMock()
    ExchangeDeployment(params, runner, users_dir=tmp_path, user_count=0).generate_users()

    runner.run_commands.assert_not_called()
    assert (tmp_path / "users.txt").read_text(encoding="utf-8") == ""


def test_exchange_install_uses_setup_exe(deployment):
    deployment.install_exchange()

    (program, arguments), = _commands(deployment.runner)
    assert program == r"C:\Setup-Software\Exchange\Setup.exe"
    assert "/mode:Install" in arguments
    assert '/OrganizationName:"Example Org"' in arguments
    assert "/IAcceptExchangeServerLicenseTerms" in arguments


def test_chrome_homepage_points_at_owa(deployment):
    deployment.configure_chrome()

    assert any("https://corp.example.com/owa" in args for _, args in _commands(deployment.runner))


def test_finalize_restarts_host(deployment):
    deployment.finalize()

    assert _commands(deployment.runner) == [restart_command(5)]


def test_report_only_stages_run_no_commands(deployment):
    deployment.optimize_system()
    deployment.configure_mailboxes()

    deployment.runner.run_commands.assert_not_called()
    assert [e.stage for e in deployment.progress.events] == ["OptimizeSystem", "MailboxTasks"]
