"""Data models for the Fixer agent."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field


class ToolInvocation(BaseModel):
    """A tool the model called while drafting its reply (e.g. web search)."""

    kind: Literal["tool_invocation"] = "tool_invocation"
    tool_name: str
    call_id: str = ""


class Message(BaseModel):
    """A textual reply; its text is used verbatim as a fix script."""

    kind: Literal["message"] = "message"
    text: str


ReplyItem = Annotated[ToolInvocation | Message, Field(discriminator="kind")]


class RemediationAttempt(BaseModel):
    """Record of one automated fix attempt for a failed stage."""

    stage_name: str
    error_text: str
    script: str = ""
    script_path: Path | None = None
    outcome: Literal["success", "failure"] = "failure"
    exit_code: int | None = None
    output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"
