"""Progress reporting for long-running deployment stages.

Reporters are fire-and-forget: a broken display never stops a deployment.
"""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ProgressEvent(BaseModel):
    """A single progress update for a stage."""

    model_config = ConfigDict(frozen=True)

    stage: str
    percent: int = Field(ge=0, le=100)
    message: str = ""

    def render(self) -> str:
        return f"[{self.stage}] {self.percent}% - {self.message}"


class ProgressReporter(Protocol):
    def report(self, event: ProgressEvent) -> None: ...


def report_progress(
    reporter: ProgressReporter | None,
    stage: str,
    percent: int,
    message: str,
) -> None:
    """Build and deliver a ProgressEvent. Never raises."""
    if reporter is None:
        return
    try:
        reporter.report(ProgressEvent(stage=stage, percent=percent, message=message))
    except Exception as e:
        logger.debug("Progress report dropped for %s: %s", stage, e)


class ConsoleProgressReporter:
    """Rewrites a single console line with the most recent event."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream or sys.stdout
        self._width = 0

    def report(self, event: ProgressEvent) -> None:
        line = event.render()
        padding = " " * max(0, self._width - len(line))
        self._width = len(line)
        try:
            self._stream.write(f"\r{line}{padding}")
            self._stream.flush()
        except (OSError, ValueError) as e:
            logger.debug("Console progress write failed: %s", e)

    def finish(self) -> None:
        """Move off the progress line so later output starts clean."""
        if self._width:
            try:
                self._stream.write("\n")
                self._stream.flush()
            except (OSError, ValueError) as e:
                logger.debug("Console progress write failed: %s", e)
            self._width = 0


class RecordingProgressReporter:
    """Keeps every event in order; optionally forwards to another reporter."""

    def __init__(self, forward: ProgressReporter | None = None):
        self.events: list[ProgressEvent] = []
        self._forward = forward

    def report(self, event: ProgressEvent) -> None:
        self.events.append(event)
        if self._forward is not None:
            self._forward.report(event)

    @property
    def latest(self) -> ProgressEvent | None:
        return self.events[-1] if self.events else None

    def for_stage(self, stage: str) -> list[ProgressEvent]:
        return [e for e in self.events if e.stage == stage]
