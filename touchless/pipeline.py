"""Deployment pipeline orchestration.

Stages run strictly in order starting from the persisted resume point. The
resume point is written before each stage starts, so a crash or reboot
mid-stage re-runs that stage on the next launch. Stages must therefore
tolerate being run again after a partial execution.

When a stage fails the fixer gets one attempt. Whatever it returns, this
run stops at the failed stage: a successful fix schedules a restart and the
next launch resumes at the same stage; a failed fix aborts.
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Protocol, Sequence

from pydantic import BaseModel

from touchless.agents.fixer.models import RemediationAttempt
from touchless.exceptions import PersistenceError, RemediationError
from touchless.progress import ProgressReporter, report_progress
from touchless.storage.files import DeployLog
from touchless.storage.state import ResumeStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Stage:
    """One named unit of work. Its action raises on failure."""

    name: str
    action: Callable[[], None]


class StageResult(BaseModel):
    """Outcome of executing one stage's action."""

    index: int
    stage_name: str
    succeeded: bool
    error_type: str = ""
    error: str = ""
    error_text: str = ""


class PipelineOutcome(StrEnum):
    COMPLETED = "completed"
    REMEDIATED = "remediated"
    ABORTED = "aborted"


class PipelineRun(BaseModel):
    """Final status of one pipeline invocation."""

    outcome: PipelineOutcome
    start_index: int
    stage_count: int
    stopped_at: int | None = None
    stage_name: str | None = None
    attempt: RemediationAttempt | None = None
    reason: str = ""

    @property
    def exit_code(self) -> int:
        return 0 if self.outcome == PipelineOutcome.COMPLETED else -1


class Remediator(Protocol):
    def remediate(self, stage_name: str, error_text: str) -> RemediationAttempt: ...


def format_error(exc: BaseException) -> str:
    """Error description handed to the fixer: type, message and traceback."""
    return "".join(traceback.format_exception(exc)).rstrip()


class Pipeline:
    """Sequential stage runner with a persisted resume point."""

    def __init__(
        self,
        stages: Sequence[Stage],
        store: ResumeStore,
        remediator: Remediator,
        progress: ProgressReporter | None = None,
        log: DeployLog | None = None,
    ):
        names = [stage.name for stage in stages]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate stage names: {', '.join(duplicates)}")

        self.stages: tuple[Stage, ...] = tuple(stages)
        self.store = store
        self.remediator = remediator
        self.progress = progress
        self.log = log

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def run(self) -> PipelineRun:
        """Run every remaining stage; stop at the first failure."""
        total = len(self.stages)
        try:
            start = self.store.get_stage()
        except PersistenceError as e:
            return self._abort(0, None, f"Could not read resume point: {e}", where="startup")

        if start > total:
            logger.warning(f"Resume point {start} is past the last stage ({total}); treating as complete")
            start = total

        if start:
            logger.info(f"Resuming at stage {start}/{total}: {self._name_at(start)}")
        else:
            logger.info(f"Pipeline starting: {' -> '.join(self.stage_names)}")

        for index in range(start, total):
            stage = self.stages[index]

            try:
                self.store.set_stage(index)
            except PersistenceError as e:
                return self._abort(start, index, f"Could not persist resume point: {e}")

            report_progress(self.progress, stage.name, 0, "Starting")
            result = self.execute_stage(index)

            if result.succeeded:
                logger.info(f"Stage {index + 1}/{total} complete: {stage.name}")
                continue

            return self._handle_failure(start, result)

        try:
            self.store.set_stage(total)
        except PersistenceError as e:
            return self._abort(start, None, f"Could not persist completion: {e}")

        logger.info(f"Pipeline complete. Ran {total - start} of {total} stages.")
        self._record(f"Deployment complete ({total} stages)")
        return PipelineRun(
            outcome=PipelineOutcome.COMPLETED,
            start_index=start,
            stage_count=total,
        )

    def execute_stage(self, index: int) -> StageResult:
        """Run a stage's action and capture any failure as a value."""
        stage = self.stages[index]
        try:
            stage.action()
        except Exception as e:
            logger.error(f"Stage {stage.name} failed: {e}")
            return StageResult(
                index=index,
                stage_name=stage.name,
                succeeded=False,
                error_type=type(e).__name__,
                error=str(e),
                error_text=format_error(e),
            )
        return StageResult(index=index, stage_name=stage.name, succeeded=True)

    def _handle_failure(self, start: int, result: StageResult) -> PipelineRun:
        report_progress(
            self.progress,
            result.stage_name,
            0,
            f"Failed: {result.error or result.error_type}; attempting automated fix",
        )

        try:
            attempt = self.remediator.remediate(result.stage_name, result.error_text)
        except RemediationError as e:
            logger.error(f"Remediation could not run for {result.stage_name}: {e}")
            return self._abort(start, result.index, f"Remediation unavailable: {e}")

        if not attempt.succeeded:
            report_progress(self.progress, result.stage_name, 0, "Automated fix failed")
            aborted = self._abort(start, result.index, f"{result.error_type}: {result.error}")
            aborted.attempt = attempt
            return aborted

        # The fix needs a restart to take effect; the next launch resumes here.
        report_progress(self.progress, result.stage_name, 100, "Fix applied; restart scheduled")
        logger.warning(
            f"Stage {result.stage_name} fixed automatically; stopping until the host restarts"
        )
        self._record(f"Stage {result.stage_name} fixed; deployment will resume after restart")
        return PipelineRun(
            outcome=PipelineOutcome.REMEDIATED,
            start_index=start,
            stage_count=len(self.stages),
            stopped_at=result.index,
            stage_name=result.stage_name,
            attempt=attempt,
            reason=f"{result.error_type}: {result.error}",
        )

    def _abort(
        self,
        start: int,
        index: int | None,
        reason: str,
        where: str = "completion",
    ) -> PipelineRun:
        stage_name = self._name_at(index) if index is not None else None
        logger.error(f"Pipeline aborted at {stage_name or where}: {reason}")
        self._record(f"Deployment aborted at {stage_name or where}: {reason}")
        return PipelineRun(
            outcome=PipelineOutcome.ABORTED,
            start_index=start,
            stage_count=len(self.stages),
            stopped_at=index,
            stage_name=stage_name,
            reason=reason,
        )

    def _name_at(self, index: int) -> str | None:
        if 0 <= index < len(self.stages):
            return self.stages[index].name
        return None

    def _record(self, text: str) -> None:
        if self.log is None:
            return
        try:
            self.log.append(text)
        except OSError as e:
            logger.error(f"Failed to write deployment log {self.log.path}: {e}")
