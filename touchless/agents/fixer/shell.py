"""Host shell profiles and restart scheduling for fix scripts."""

from __future__ import annotations

import logging
import math
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal

from touchless.exceptions import ExecutionError
from touchless.executor import CommandResult, run

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShellProfile:
    """How fix scripts are written and launched on this host."""

    language: str
    suffix: str
    program: str
    argument_template: str

    def arguments_for(self, script_path: Path) -> str:
        return self.argument_template.format(path=script_path, quoted=shlex.quote(str(script_path)))


POWERSHELL = ShellProfile(
    language="PowerShell",
    suffix=".ps1",
    program="powershell.exe",
    argument_template='-NoProfile -ExecutionPolicy Bypass -File "{path}"',
)

BASH = ShellProfile(
    language="Bash",
    suffix=".sh",
    program="bash",
    argument_template="{quoted}",
)


def resolve_shell(choice: Literal["auto", "powershell", "bash"] = "auto") -> ShellProfile:
    """Pick the host's native shell unless one is configured explicitly."""
    if choice == "powershell":
        return POWERSHELL
    if choice == "bash":
        return BASH
    return POWERSHELL if os.name == "nt" else BASH


def restart_command(delay_seconds: int) -> tuple[str, str]:
    """Forced host restart after a short delay."""
    if os.name == "nt":
        return "shutdown", f"/r /t {delay_seconds} /f"
    if delay_seconds <= 0:
        return "shutdown", "-r now"
    # POSIX shutdown schedules in whole minutes
    return "shutdown", f"-r +{math.ceil(delay_seconds / 60)}"


class HostRestarter:
    """Schedules a restart so a successful fix can take effect."""

    def __init__(
        self,
        delay_seconds: int = 5,
        runner: Callable[[str, str], CommandResult] = run,
    ):
        self.delay_seconds = delay_seconds
        self._runner = runner

    def __call__(self) -> None:
        program, arguments = restart_command(self.delay_seconds)
        logger.info("Scheduling host restart: %s %s", program, arguments)
        try:
            result = self._runner(program, arguments)
        except ExecutionError as e:
            logger.error("Could not schedule host restart: %s", e)
            return
        if not result.succeeded:
            logger.error(
                "Host restart command exited with %d: %s",
                result.exit_code,
                result.combined_output.strip(),
            )
