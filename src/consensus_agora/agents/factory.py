"""Agent factory for Consensus Agora.

This module creates LangChain chat models from configuration using
``init_chat_model`` and wraps them as participant agents.
"""

import os
from typing import Dict, Mapping, Optional

from langchain.chat_models import init_chat_model
from langchain_core.language_models.chat_models import BaseChatModel

from consensus_agora.agents.participant import ParticipantAgent
from consensus_agora.config.loader import API_KEY_ENV_VARS
from consensus_agora.config.models import Config, ModelConfig, Provider
from consensus_agora.context.messages import MODERATOR_ID
from consensus_agora.utils.exceptions import ConfigurationError
from consensus_agora.utils.logging import get_logger


logger = get_logger(__name__)

# Map Consensus Agora providers to LangChain provider strings
PROVIDER_MAPPING = {
    Provider.GOOGLE: "google_genai",
    Provider.OPENAI: "openai",
    Provider.ANTHROPIC: "anthropic",
    Provider.GROK: "openai",  # Grok uses an OpenAI-compatible API
}

GROK_BASE_URL = "https://api.x.ai/v1"


def create_chat_model(model_config: ModelConfig) -> BaseChatModel:
    """Create a chat model using LangChain's init_chat_model pattern.

    Args:
        model_config: Model settings

    Returns:
        LangChain chat model instance

    Raises:
        ConfigurationError: If the provider is unsupported or its
            integration package is missing
    """
    provider_str = PROVIDER_MAPPING.get(model_config.provider)
    if not provider_str:
        raise ConfigurationError(f"Unsupported provider: {model_config.provider}")

    model_identifier = f"{provider_str}:{model_config.model}"
    init_kwargs = {}
    if model_config.temperature is not None:
        init_kwargs["temperature"] = model_config.temperature
    if model_config.max_tokens:
        init_kwargs["max_tokens"] = model_config.max_tokens
    if model_config.provider == Provider.GROK:
        init_kwargs["base_url"] = GROK_BASE_URL
        init_kwargs["api_key"] = os.getenv(API_KEY_ENV_VARS[Provider.GROK])

    logger.info(f"Creating chat model with init_chat_model: {model_identifier}")
    try:
        return init_chat_model(model_identifier, **init_kwargs)
    except ImportError as e:
        raise ConfigurationError(
            f"Missing integration package for provider {model_config.provider.value}",
            details={"model": model_config.model, "error": str(e)},
        ) from e


class AgentFactory:
    """Factory for creating the moderator model and participant agents."""

    def __init__(
        self,
        config: Config,
        chat_models: Optional[Mapping[str, BaseChatModel]] = None,
    ):
        """Initialize the agent factory.

        Args:
            config: Consensus Agora configuration
            chat_models: Optional pre-built chat models keyed by participant
                id (or ``"moderator"``); used instead of creating new ones
        """
        self.config = config
        self.chat_models = dict(chat_models or {})

    def _get_model(self, key: str, model_config: ModelConfig) -> BaseChatModel:
        if key in self.chat_models:
            logger.debug(f"Using injected chat model for {key}")
            return self.chat_models[key]
        return create_chat_model(model_config)

    def create_moderator_llm(self) -> BaseChatModel:
        """Create the moderator's chat model."""
        return self._get_model(MODERATOR_ID, self.config.moderator.to_model_config())

    def create_participants(self) -> Dict[str, ParticipantAgent]:
        """Create all participant agents in configuration order.

        Returns:
            Dictionary mapping participant ids to agents
        """
        agents = {}
        for participant in self.config.participants:
            llm = self._get_model(participant.id, participant.model)
            agents[participant.id] = ParticipantAgent(participant, llm)

        logger.info(f"Created {len(agents)} participant agents")
        return agents
