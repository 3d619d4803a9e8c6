"""Fixer Agent package."""

from .main import (
    AgentReasoningService,
    ReasoningService,
    RemediationEngine,
    create_remediation_engine,
    extract_reply_items,
)
from .models import Message, RemediationAttempt, ReplyItem, ToolInvocation
from .shell import BASH, POWERSHELL, HostRestarter, ShellProfile, resolve_shell

__all__ = [
    "AgentReasoningService",
    "ReasoningService",
    "RemediationEngine",
    "create_remediation_engine",
    "extract_reply_items",
    "Message",
    "RemediationAttempt",
    "ReplyItem",
    "ToolInvocation",
    "ShellProfile",
    "HostRestarter",
    "resolve_shell",
    "POWERSHELL",
    "BASH",
]
