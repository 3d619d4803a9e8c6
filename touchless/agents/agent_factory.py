"""Generic agent factory for managing singleton agent instances."""

import logging
import os
from typing import Callable, Generic, TypeVar

from pydantic_ai import Agent

logger = logging.getLogger(__name__)

DepsT = TypeVar("DepsT")
OutputT = TypeVar("OutputT")


class AgentFactory(Generic[DepsT, OutputT]):
    """Factory for managing singleton agent instances with consistent initialization."""

    def __init__(
        self,
        create_fn: Callable[[], Agent[DepsT, OutputT]],
        api_key: str = "",
    ):
        """Initialize the agent factory.

        Args:
            create_fn: Function that creates a new agent instance
            api_key: OpenAI API key exported before the agent is built
        """
        self._create_fn = create_fn
        self._api_key = api_key
        self._agent: Agent[DepsT, OutputT] | None = None

    def get_agent(self) -> Agent[DepsT, OutputT]:
        """Get or create the singleton agent instance."""
        if self._agent is None:
            self._setup_api_keys()
            self._agent = self._create_fn()
            logger.debug("Created agent instance")
        return self._agent

    def _setup_api_keys(self) -> None:
        """Export the configured OpenAI key so the provider can pick it up."""
        if self._api_key:
            os.environ["OPENAI_API_KEY"] = self._api_key
