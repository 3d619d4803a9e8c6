"""Fixer Agent: drafts and runs corrective scripts for failed stages.

When a stage fails, the fixer:
1. Records the failure in the deployment log
2. Asks the model for a script in the host shell (web search allowed)
3. Saves the first textual reply as fix_{stage} next to the log
4. Runs it and appends its output to the log
5. Schedules a host restart if the script exits 0
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Protocol, Sequence

from pydantic_ai import Agent, WebSearchTool
from pydantic_ai.messages import (
    BuiltinToolCallPart,
    ModelMessage,
    ModelResponse,
    TextPart,
    ToolCallPart,
)
from pydantic_ai.models import Model

from touchless.agents.agent_factory import AgentFactory
from touchless.config import RemediationConfig, Settings
from touchless.exceptions import ExecutionError, RemediationError
from touchless.executor import CommandResult, run
from touchless.llm_providers import get_model_string
from touchless.storage.files import DeployLog, save_fix_script

from .models import Message, RemediationAttempt, ReplyItem, ToolInvocation
from .prompts import FIXER_SYSTEM_PROMPT, build_fix_prompt
from .shell import HostRestarter, ShellProfile, resolve_shell

logger = logging.getLogger(__name__)


class ReasoningService(Protocol):
    def request_fix(
        self, stage_name: str, error_text: str, shell_language: str
    ) -> list[ReplyItem]: ...


def extract_reply_items(messages: Sequence[ModelMessage]) -> list[ReplyItem]:
    """Flatten model responses into ordered tool invocations and messages."""
    items: list[ReplyItem] = []
    for message in messages:
        if not isinstance(message, ModelResponse):
            continue
        for part in message.parts:
            if isinstance(part, TextPart):
                items.append(Message(text=part.content))
            elif isinstance(part, (BuiltinToolCallPart, ToolCallPart)):
                items.append(
                    ToolInvocation(tool_name=part.tool_name, call_id=part.tool_call_id or "")
                )
    return items


def _create_fixer_agent(model: Model | str, config: RemediationConfig) -> Agent[None, str]:
    """Create the Fixer agent (called lazily to avoid loading API keys at import time)."""
    return Agent(
        model=model,
        output_type=str,
        system_prompt=FIXER_SYSTEM_PROMPT,
        builtin_tools=[WebSearchTool()] if config.web_search else [],
        model_settings={"max_tokens": config.max_output_tokens},
    )


class AgentReasoningService:
    """Reasoning service backed by a pydantic-ai agent."""

    def __init__(
        self,
        config: RemediationConfig | None = None,
        model: Model | None = None,
        api_key: str = "",
    ):
        self.config = config or RemediationConfig()
        self._explicit_model = model
        self._api_key = api_key
        self._factory: AgentFactory[None, str] = AgentFactory(
            create_fn=lambda: _create_fixer_agent(
                model or get_model_string(self.config.model), self.config
            ),
            api_key=api_key,
        )

    def get_agent(self) -> Agent[None, str]:
        if self._explicit_model is None and not (
            self._api_key or os.environ.get("OPENAI_API_KEY")
        ):
            raise RemediationError("OPENAI_API_KEY not set")
        return self._factory.get_agent()

    def request_fix(
        self, stage_name: str, error_text: str, shell_language: str
    ) -> list[ReplyItem]:
        agent = self.get_agent()
        prompt = build_fix_prompt(stage_name, error_text, shell_language)
        result = agent.run_sync(prompt)
        return extract_reply_items(result.new_messages())


class RemediationEngine:
    """Turns a failed stage into one fix attempt."""

    def __init__(
        self,
        service: ReasoningService,
        log: DeployLog,
        shell: ShellProfile | None = None,
        runner: Callable[[str, str], CommandResult] = run,
        restart: Callable[[], None] | None = None,
        script_dir: Path | None = None,
    ):
        self.service = service
        self.log = log
        self.shell = shell or resolve_shell()
        self._runner = runner
        self._restart = restart
        self.script_dir = script_dir or log.directory

    def attempt_fix(self, stage_name: str, error_text: str) -> bool:
        """Return True if a fix script ran and exited 0."""
        return self.remediate(stage_name, error_text).succeeded

    def remediate(self, stage_name: str, error_text: str) -> RemediationAttempt:
        """Run one remediation attempt.

        Returns a failed attempt when the fix did not work.

        Raises:
            RemediationError: If the attempt could not be carried out at all
                (log not writable, service unavailable, shell not launchable)
        """
        self._append(stage_name, f"Error at {stage_name}: {error_text}")
        logger.info(f"Requesting fix for stage {stage_name}")

        try:
            items = self.service.request_fix(stage_name, error_text, self.shell.language)
        except RemediationError as e:
            self._append(stage_name, f"Remediation unavailable for {stage_name}: {e}")
            raise
        except Exception as e:
            logger.error(f"Reasoning service failed for {stage_name}: {e}", exc_info=True)
            self._append(stage_name, f"Remediation request failed for {stage_name}: {e}")
            raise RemediationError(
                f"Reasoning service failed for {stage_name}: {e}", stage=stage_name
            ) from e

        script = self._select_script(stage_name, items)

        try:
            script_path = save_fix_script(self.script_dir, stage_name, self.shell.suffix, script)
        except OSError as e:
            raise RemediationError(
                f"Could not write fix script for {stage_name}: {e}", stage=stage_name
            ) from e

        attempt = RemediationAttempt(
            stage_name=stage_name,
            error_text=error_text,
            script=script,
            script_path=script_path,
        )

        if not script.strip():
            self._append(stage_name, f"No fix script returned for {stage_name}")
            logger.warning(f"Fixer returned no script for {stage_name}")
            return attempt

        try:
            result = self._runner(self.shell.program, self.shell.arguments_for(script_path))
        except ExecutionError as e:
            self._append(stage_name, f"Could not launch {self.shell.program}: {e}")
            raise RemediationError(
                f"Could not run fix script for {stage_name}: {e}", stage=stage_name
            ) from e

        attempt.exit_code = result.exit_code
        attempt.output = result.combined_output
        self._append(
            stage_name,
            f"Fix script {script_path.name} exited with {result.exit_code}\n{result.combined_output}",
        )

        if result.succeeded:
            attempt.outcome = "success"
            logger.info(f"Fix for {stage_name} succeeded")
            if self._restart is not None:
                self._restart()
        else:
            logger.warning(f"Fix for {stage_name} failed with exit code {result.exit_code}")

        return attempt

    def _select_script(self, stage_name: str, items: list[ReplyItem]) -> str:
        """First textual message wins; tool invocations are only logged."""
        for item in items:
            if isinstance(item, ToolInvocation):
                logger.info(f"[{item.tool_name} invoked] {item.call_id}")
                self._append(stage_name, f"[{item.tool_name} invoked] {item.call_id}")
                continue
            return item.text
        return ""

    def _append(self, stage_name: str, text: str) -> None:
        try:
            self.log.append(text)
        except OSError as e:
            raise RemediationError(
                f"Could not write deployment log {self.log.path}: {e}", stage=stage_name
            ) from e


def create_remediation_engine(settings: Settings, log: DeployLog) -> RemediationEngine:
    """Build the production engine from settings."""
    config = settings.remediation
    restart = HostRestarter(config.reboot_delay_seconds) if config.reboot_on_success else None
    return RemediationEngine(
        service=AgentReasoningService(config=config, api_key=settings.openai_api_key),
        log=log,
        shell=resolve_shell(config.shell),
        restart=restart,
        script_dir=settings.log_dir,
    )
