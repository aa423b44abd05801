"""Concrete implementations of LLM analysis using LangChain."""

import os

import anthropic
import httpx
import openai
from langchain_anthropic import ChatAnthropic
from langchain_openai import ChatOpenAI

from diff_composer.analysis.repositories.base_langchain_agent import BaseLangChainAgent
from diff_composer.config import ComposerConfig, load_env_file

DEFAULT_ANTHROPIC_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_OPENAI_MODEL = "gpt-4o"
MAX_OUTPUT_TOKENS = 4096


class LangChainClaudeAgent(BaseLangChainAgent):
    """LangChain implementation using Claude for change analysis."""

    transient_errors = (anthropic.APIConnectionError,)

    def __init__(self, model_name: str | None = None, config: ComposerConfig | None = None) -> None:
        """
        Initialize the Claude agent with API key from environment.

        Args:
            model_name: Optional model name override. Defaults to ANTHROPIC_MODEL
                        or claude-3-5-sonnet-20241022
            config: Timeouts and temperature
        """
        load_env_file()
        config = config or ComposerConfig()

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable is required. "
                "Please set it in a .env file or as an environment variable. "
                "See .env.example for reference."
            )

        model = model_name or os.getenv("ANTHROPIC_MODEL", DEFAULT_ANTHROPIC_MODEL)

        # Retries are handled by retry_api_call
        self._llm = ChatAnthropic(  # type: ignore[call-arg]
            model_name=model,
            temperature=config.temperature,
            max_tokens=MAX_OUTPUT_TOKENS,
            max_retries=0,
            timeout=config.request_timeout_secs,
        )

        super().__init__(config)


class LangChainOpenAIAgent(BaseLangChainAgent):
    """LangChain implementation using OpenAI for change analysis."""

    transient_errors = (openai.APIConnectionError,)

    def __init__(self, model_name: str | None = None, config: ComposerConfig | None = None) -> None:
        """
        Initialize the OpenAI agent with API key from environment.

        Args:
            model_name: Optional model name override. Defaults to OPENAI_MODEL or gpt-4o
            config: Timeouts and temperature
        """
        load_env_file()
        config = config or ComposerConfig()

        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError(
                "OPENAI_API_KEY environment variable is required. "
                "Please set it in a .env file or as an environment variable. "
                "See .env.example for reference."
            )

        model = model_name or os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL)

        # Retries are handled by retry_api_call
        self._llm = ChatOpenAI(  # type: ignore[call-arg]
            model=model,
            temperature=config.temperature,
            max_retries=0,
            timeout=httpx.Timeout(
                config.request_timeout_secs, connect=config.connect_timeout_secs
            ),
        )

        super().__init__(config)
