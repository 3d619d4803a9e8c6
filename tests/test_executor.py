"""Tests for external command execution."""

import logging
import sys

import pytest

from touchless.exceptions import ExecutionError, StageError
from touchless.executor import CommandResult, CommandRunner, run
from touchless.progress import RecordingProgressReporter

PY = sys.executable


def _py(code: str) -> str:
    return f'-c "{code}"'


class TestRun:
    def test_captures_stdout(self):
        result = run(PY, _py("print('OK', end='')"))

        assert result.exit_code == 0
        assert result.stdout == "OK"
        assert result.stderr == ""
        assert result.succeeded

    def test_captures_stderr(self):
        result = run(PY, _py("import sys; sys.stderr.write('oops')"))
        assert result.stderr == "oops"

    def test_non_zero_exit_is_reported_not_raised(self):
        result = run(PY, _py("import sys; sys.exit(3)"))

        assert result.exit_code == 3
        assert not result.succeeded

    def test_missing_program_raises(self):
        with pytest.raises(ExecutionError) as excinfo:
            run("definitely-not-a-real-program-xyz", "--help")
        assert excinfo.value.program == "definitely-not-a-real-program-xyz"

    def test_cwd_is_honoured(self, tmp_path):
        result = run(PY, _py("import os; print(os.getcwd(), end='')"), cwd=tmp_path)
        assert result.stdout == str(tmp_path.resolve())

    def test_combined_output(self):
        assert CommandResult(exit_code=0, stdout="a", stderr="b").combined_output == "ab"


class TestCommandRunner:
    def test_runs_all_commands_and_logs_output(self, deploy_log):
        runner = CommandRunner(deploy_log)
        results = runner.run_commands(
            "SystemConfig",
            [(PY, _py("print('first')")), (PY, _py("print('second')"))],
        )

        assert [r.exit_code for r in results] == [0, 0]
        text = deploy_log.read()
        assert "[SystemConfig]" in text
        assert "first" in text
        assert "second" in text

    def test_reports_progress_per_command(self, deploy_log):
        progress = RecordingProgressReporter()
        runner = CommandRunner(deploy_log, progress)
        runner.run_commands("X", [(PY, _py("pass"))] * 4)

        assert [e.percent for e in progress.for_stage("X")] == [30, 50, 70, 90]

    def test_non_zero_exit_fails_stage_and_stops(self, deploy_log):
        runner = CommandRunner(deploy_log)

        with pytest.raises(StageError) as excinfo:
            runner.run_commands(
                "Prereqs",
                [
                    (PY, _py("import sys; print('boom'); sys.exit(2)")),
                    (PY, _py("print('never')")),
                ],
            )

        assert str(excinfo.value) == f"{PY} failed 2"
        assert excinfo.value.stage == "Prereqs"
        text = deploy_log.read()
        assert "boom" in text
        assert "never" not in text

    def test_launch_failure_fails_stage(self, deploy_log):
        runner = CommandRunner(deploy_log)

        with pytest.raises(StageError) as excinfo:
            runner.run_commands("X", [("definitely-not-a-real-program-xyz", "")])

        assert isinstance(excinfo.value.__cause__, ExecutionError)

    def test_secrets_are_redacted(self, deploy_log):
        progress = RecordingProgressReporter()
        runner = CommandRunner(deploy_log, progress)
        runner.run_commands(
            "ADDSForest",
            [(PY, _py("print('pw=hunter2')"))],
            redact=["hunter2"],
        )

        assert "hunter2" not in deploy_log.read()
        assert "********" in deploy_log.read()
        assert all("hunter2" not in e.message for e in progress.events)

    def test_empty_command_list(self, deploy_log):
        assert CommandRunner(deploy_log).run_commands("X", []) == []

    def test_secrets_stay_out_of_diagnostic_logging(self, deploy_log, caplog):
        caplog.set_level(logging.DEBUG, logger="touchless")
        runner = CommandRunner(deploy_log)
        runner.run_commands(
            "ADDSForest",
            [(PY, '-c "print(1)" hunter2')],
            redact=["hunter2"],
        )

        assert any("Running" in r.getMessage() for r in caplog.records)
        assert all("hunter2" not in r.getMessage() for r in caplog.records)
        assert "hunter2" not in deploy_log.read()
