"""Factory for creating LLM agent instances."""

import os

from diff_composer.analysis.repositories.implementations import (
    LangChainClaudeAgent,
    LangChainOpenAIAgent,
)
from diff_composer.analysis.repositories.interfaces import LLMAgentRepository
from diff_composer.config import ComposerConfig, load_env_file


def create_llm_agent(
    model_name: str | None = None, config: ComposerConfig | None = None
) -> LLMAgentRepository:
    """
    Create an LLM agent instance based on configuration.

    Args:
        model_name: Optional model name override. If not provided, uses
                   LLM_PROVIDER and model-specific env vars.
        config: Timeouts and temperature passed to the agent

    Returns:
        LLM agent instance (Claude or OpenAI)

    Raises:
        ValueError: If LLM_PROVIDER is invalid or required API keys are missing
    """
    load_env_file()

    provider = os.getenv("LLM_PROVIDER", "anthropic").lower()

    if provider in ("anthropic", "claude"):
        return LangChainClaudeAgent(model_name=model_name, config=config)
    elif provider in ("openai", "gpt"):
        return LangChainOpenAIAgent(model_name=model_name, config=config)
    else:
        raise ValueError(
            f"Invalid LLM_PROVIDER: {provider}. "
            "Supported values: 'anthropic', 'claude', 'openai', 'gpt'"
        )
