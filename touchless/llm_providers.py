"""LLM model enums for the remediation agent.

Remediation runs on the OpenAI Responses API so the built-in web search
tool is available to the model while it drafts a fix.
"""

from enum import StrEnum


class OpenAIModel(StrEnum):
    """OpenAI models available via API."""

    GPT_4O_MINI = "gpt-4o-mini"
    GPT_4_1_MINI = "gpt-4.1-mini"
    O4_MINI = "o4-mini"
    GPT_5_MINI = "gpt-5-mini"


def get_model_string(model: OpenAIModel) -> str:
    """Get the pydantic-ai model string for an OpenAI model.

    Uses the 'openai-responses:' prefix to leverage the Responses API,
    which supports built-in tools like WebSearchTool.
    """
    return f"openai-responses:{model.value}"
