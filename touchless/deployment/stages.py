"""Exchange Server deployment recipes.

Ten stages take a fresh Windows Server to a working Exchange mailbox
server: system settings, prerequisites via Chocolatey, a new AD forest,
local users, Exchange setup and a final restart. Stage names are part of
the resume contract; never rename or reorder them.
"""

from __future__ import annotations

import logging
import secrets
from pathlib import Path, PureWindowsPath

from touchless.agents.fixer.shell import restart_command
from touchless.executor import Command, CommandRunner
from touchless.pipeline import Stage
from touchless.progress import ProgressReporter, report_progress

from .models import DeploymentParams

logger = logging.getLogger(__name__)

STAGE_NAMES = (
    "OptimizeSystem",
    "SystemConfig",
    "Prereqs",
    "ADDSForest",
    "ExplorerSetup",
    "UserGeneration",
    "ExchangeInstall",
    "MailboxTasks",
    "ChromeConfig",
    "Finalize",
)

_POWERSHELL = "powershell.exe"
_PS_PREFIX = "-NoProfile -ExecutionPolicy Bypass -Command"

CHOCOLATEY_PACKAGES = ("netfx-4.8", "vcredist2012", "vcredist2013", "UCMA4")


def _powershell(script: str) -> Command:
    return _POWERSHELL, f'{_PS_PREFIX} "{script}"'


class ExchangeDeployment:
    """Builds the stage list for one Exchange deployment."""

    def __init__(
        self,
        params: DeploymentParams,
        runner: CommandRunner,
        progress: ProgressReporter | None = None,
        timezone: str = "Eastern Standard Time",
        users_dir: Path | None = None,
        user_count: int = 10,
    ):
        self.params = params
        self.runner = runner
        self.progress = progress
        self.timezone = timezone
        self.users_dir = users_dir or Path.home() / "Desktop"
        self.user_count = user_count

    def stages(self) -> list[Stage]:
        actions = {
            "OptimizeSystem": self.optimize_system,
            "SystemConfig": self.configure_system,
            "Prereqs": self.install_prereqs,
            "ADDSForest": self.configure_ad,
            "ExplorerSetup": self.configure_explorer,
            "UserGeneration": self.generate_users,
            "ExchangeInstall": self.install_exchange,
            "MailboxTasks": self.configure_mailboxes,
            "ChromeConfig": self.configure_chrome,
            "Finalize": self.finalize,
        }
        return [Stage(name=name, action=actions[name]) for name in STAGE_NAMES]

    def _report(self, stage: str, percent: int, message: str) -> None:
        report_progress(self.progress, stage, percent, message)

    def optimize_system(self) -> None:
        self._report("OptimizeSystem", 10, "Applying system optimizations")

    def configure_system(self) -> None:
        self._report("SystemConfig", 20, "Configuring system settings")
        self.runner.run_commands(
            "SystemConfig",
            [
                ("tzutil", f'/s "{self.timezone}"'),
                (
                    "reg",
                    'add "HKLM\\SYSTEM\\CurrentControlSet\\Control\\Terminal Server" '
                    "/v fDenyTSConnections /t REG_DWORD /d 0 /f",
                ),
            ],
        )

    def install_prereqs(self) -> None:
        self._report("Prereqs", 30, "Installing prerequisites")
        bootstrap = (
            "[System.Net.ServicePointManager]::SecurityProtocol = "
            "[System.Net.ServicePointManager]::SecurityProtocol -bor 3072; "
            "if (-not (Get-Command choco -ErrorAction SilentlyContinue)) { "
            "iex ((New-Object System.Net.WebClient).DownloadString("
            "'https://community.chocolatey.org/install.ps1')) }; "
        )
        install = f"choco install {' '.join(CHOCOLATEY_PACKAGES)} -y --ignore-checksums"
        self.runner.run_commands("Prereqs", [_powershell(bootstrap + install)])

    def configure_ad(self) -> None:
        self._report("ADDSForest", 40, "Setting up AD")
        p = self.params
        script = (
            "Install-WindowsFeature AD-Domain-Services -IncludeManagementTools; "
            "Import-Module ADDSDeployment; "
            f"$dsrm=ConvertTo-SecureString '{p.dsrm_password}' -AsPlainText -Force; "
            f"Install-ADDSForest -DomainName '{p.domain_name}' "
            f"-DomainNetbiosName '{p.netbios_name}' "
            "-SafeModeAdministratorPassword $dsrm -InstallDns -NoRebootOnCompletion -Force;"
        )
        self.runner.run_commands("ADDSForest", [_powershell(script)], redact=[p.dsrm_password])

    def configure_explorer(self) -> None:
        self._report("ExplorerSetup", 50, "Configuring Explorer")
        key = "HKCU\\Software\\Microsoft\\Windows\\CurrentVersion\\Explorer\\Advanced"
        self.runner.run_commands(
            "ExplorerSetup",
            [
                ("reg", f'add "{key}" /v Hidden /t REG_DWORD /d 1 /f'),
                ("powercfg", "/change standby-timeout-ac 0"),
                ("powercfg", "-hibernate off"),
            ],
        )

    def generate_users(self) -> None:
        """Create local users and write their credentials to users.txt.

        Existing users get a fresh password instead of failing, so the
        stage can be re-run after a partial attempt.
        """
        self._report("UserGeneration", 60, "Creating users")
        credentials = [
            (f"user{i}", secrets.token_hex(6)) for i in range(1, self.user_count + 1)
        ]

        self.users_dir.mkdir(parents=True, exist_ok=True)
        users_file = self.users_dir / "users.txt"
        users_file.write_text(
            "".join(f"{user}:{password}\n" for user, password in credentials),
            encoding="utf-8",
        )
        logger.info(f"Wrote {len(credentials)} user credentials to {users_file}")

        commands = [
            _powershell(
                f"if (Get-LocalUser -Name '{user}' -ErrorAction SilentlyContinue) "
                f"{{ net user {user} {password} }} else {{ net user {user} {password} /add }}"
            )
            for user, password in credentials
        ]
        if commands:
            self.runner.run_commands(
                "UserGeneration",
                commands,
                redact=[password for _, password in credentials],
            )

    def install_exchange(self) -> None:
        self._report("ExchangeInstall", 70, "Installing Exchange")
        p = self.params
        setup_exe = str(PureWindowsPath(p.exchange_setup_path) / "Setup.exe")
        self.runner.run_commands(
            "ExchangeInstall",
            [
                (
                    setup_exe,
                    "/mode:Install /roles:Mailbox,ClientAccess "
                    f'/OrganizationName:"{p.organization_name}" '
                    f"/DomainController:{p.domain_name} "
                    "/IAcceptExchangeServerLicenseTerms",
                )
            ],
        )

    def configure_mailboxes(self) -> None:
        self._report("MailboxTasks", 80, "Configuring mailboxes")

    def configure_chrome(self) -> None:
        self._report("ChromeConfig", 85, "Configuring Chrome")
        key = "HKLM\\SOFTWARE\\Policies\\Google\\Chrome"
        self.runner.run_commands(
            "ChromeConfig",
            [
                (
                    "reg",
                    f'add "{key}" /v HomepageLocation /t REG_SZ '
                    f"/d https://{self.params.domain_name}/owa /f",
                ),
                ("reg", f'add "{key}" /v HomepageIsNewTabPage /t REG_DWORD /d 0 /f'),
            ],
        )

    def finalize(self) -> None:
        self._report("Finalize", 95, "Restarting")
        self.runner.run_commands("Finalize", [restart_command(5)])


def build_exchange_stages(
    params: DeploymentParams,
    runner: CommandRunner,
    progress: ProgressReporter | None = None,
    **options,
) -> list[Stage]:
    """Stage list for a touchless Exchange deployment."""
    return ExchangeDeployment(params, runner, progress, **options).stages()
