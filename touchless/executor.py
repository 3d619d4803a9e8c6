"""External command execution with full output capture."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from pathlib import Path
from typing import Sequence

from pydantic import BaseModel

from touchless.exceptions import ExecutionError, StageError
from touchless.progress import ProgressReporter, report_progress
from touchless.storage.files import DeployLog

logger = logging.getLogger(__name__)

# (program, arguments) as a single command-line string
Command = tuple[str, str]


class CommandResult(BaseModel):
    """Outcome of one external command."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def combined_output(self) -> str:
        return self.stdout + self.stderr


def _redact(text: str, secrets: Sequence[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, "********")
    return text


def _build_command_line(program: str, arguments: str) -> str | list[str]:
    if os.name == "nt":
        # Windows receives the argument string verbatim on its command line.
        quoted = subprocess.list2cmdline([program])
        return f"{quoted} {arguments}" if arguments else quoted
    return [program, *shlex.split(arguments)]


def run(
    program: str,
    arguments: str = "",
    cwd: str | Path | None = None,
    redact: Sequence[str] = (),
) -> CommandResult:
    """Run one command to completion and capture stdout/stderr in full.

    A non-zero exit code is reported in the result, not raised. Values in
    ``redact`` are masked in diagnostic logging.

    Raises:
        ExecutionError: If the program cannot be launched at all
    """
    command_line = _build_command_line(program, arguments)
    logger.debug("Running %s %s (cwd=%s)", program, _redact(arguments, redact), cwd)

    try:
        proc = subprocess.run(
            command_line,
            cwd=str(cwd) if cwd is not None else None,
            capture_output=True,
            text=True,
            errors="replace",
            stdin=subprocess.DEVNULL,
        )
    except (OSError, ValueError) as e:
        logger.error("Failed to launch %s: %s", program, e)
        raise ExecutionError(f"Could not launch {program}: {e}", program=program) from e

    result = CommandResult(
        exit_code=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
    logger.debug("%s exited with %d", program, result.exit_code)
    return result


class CommandRunner:
    """Runs a stage's command list, logging output and reporting progress."""

    def __init__(self, log: DeployLog, progress: ProgressReporter | None = None):
        self.log = log
        self.progress = progress

    def run(
        self,
        program: str,
        arguments: str = "",
        cwd: str | Path | None = None,
        redact: Sequence[str] = (),
    ) -> CommandResult:
        return run(program, arguments, cwd=cwd, redact=redact)

    def run_commands(
        self,
        stage: str,
        commands: list[Command],
        redact: Sequence[str] = (),
    ) -> list[CommandResult]:
        """Run commands in order; the first non-zero exit fails the stage.

        Values in ``redact`` are masked wherever a command line is logged
        or reported.

        Raises:
            StageError: If a command cannot be launched or exits non-zero
        """
        total = len(commands)
        results: list[CommandResult] = []

        for i, (program, arguments) in enumerate(commands):
            shown = _redact(f"{program} {arguments}", redact)
            report_progress(self.progress, stage, 10 + (i + 1) * (80 // total), shown)

            try:
                result = self.run(program, arguments, redact=redact)
            except ExecutionError as e:
                self.log.append(f"[{stage}] {shown}\n{_redact(str(e), redact)}")
                raise StageError(_redact(str(e), redact), stage=stage) from e

            self.log.append(
                f"[{stage}] {shown}\n"
                f"{_redact(result.stdout, redact)}\n{_redact(result.stderr, redact)}"
            )
            results.append(result)

            if not result.succeeded:
                logger.warning(f"{stage}: {program} exited with {result.exit_code}")
                raise StageError(f"{program} failed {result.exit_code}", stage=stage)

        return results
