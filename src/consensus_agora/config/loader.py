"""Configuration loader for Consensus Agora.

This module handles loading and parsing YAML configuration files
with proper error handling and validation.
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from consensus_agora.config.models import Config, Provider
from consensus_agora.utils.exceptions import ConfigurationError
from consensus_agora.utils.logging import get_logger


logger = get_logger(__name__)

API_KEY_ENV_VARS = {
    Provider.GOOGLE: "GOOGLE_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GROK: "XAI_API_KEY",
}


class ConfigLoader:
    """Loads and validates configuration from YAML files."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize the configuration loader.

        Args:
            config_path: Path to the configuration file.
                        Defaults to 'meeting.yml' in current directory.
        """
        if config_path is None:
            config_path = Path("meeting.yml")

        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load and validate the configuration file.

        Returns:
            Validated configuration object.

        Raises:
            ConfigurationError: If the configuration is invalid or cannot be loaded.
        """
        if self._config is not None:
            return self._config

        if not self.config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {self.config_path}",
                details={"path": str(self.config_path.absolute())},
            )

        try:
            logger.info(f"Loading configuration from: {self.config_path}")
            with open(self.config_path, "r", encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML syntax in configuration file: {e}",
                details={"path": str(self.config_path)},
            ) from e

        if raw_config is None:
            raise ConfigurationError(
                "Configuration file is empty",
                details={"path": str(self.config_path)},
            )

        self._config = self.parse(raw_config, source=str(self.config_path))

        logger.info(
            f"Configuration loaded successfully: "
            f"{len(self._config.participants)} participants, "
            f"max_rounds={self._config.meeting.max_rounds}"
        )
        return self._config

    @staticmethod
    def parse(raw_config: dict, source: str = "<dict>") -> Config:
        """Validate an already-parsed configuration mapping.

        Args:
            raw_config: Mapping with meeting, moderator and participants keys.
            source: Where the mapping came from, for error details.

        Returns:
            Validated configuration object.

        Raises:
            ConfigurationError: If validation fails.
        """
        if not isinstance(raw_config, dict):
            raise ConfigurationError(
                "Configuration root must be a mapping",
                details={"path": source, "type": type(raw_config).__name__},
            )
        try:
            return Config(**raw_config)
        except ValidationError as e:
            error_messages = []
            for error in e.errors():
                loc = " -> ".join(str(x) for x in error["loc"])
                error_messages.append(f"{loc}: {error['msg']}")

            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(error_messages),
                details={"path": source},
            ) from e

    def reload(self) -> Config:
        """Reload the configuration file.

        Returns:
            Validated configuration object.
        """
        self._config = None
        return self.load()

    @property
    def config(self) -> Config:
        """Get the loaded configuration, loading it if necessary."""
        if self._config is None:
            self.load()
        return self._config

    def validate_api_keys(self) -> dict[str, bool]:
        """Check if required API keys are present in environment.

        Returns:
            Dictionary mapping provider names to availability status.

        Note:
            This only checks if the environment variables exist,
            not if the keys are valid.
        """
        config = self.config
        required = {config.moderator.provider}
        required.update(p.model.provider for p in config.participants)

        return {
            provider.value: bool(os.getenv(API_KEY_ENV_VARS[provider]))
            for provider in required
        }

    def get_missing_api_keys(self) -> list[str]:
        """Get list of providers whose API key is missing."""
        return sorted(
            provider
            for provider, available in self.validate_api_keys().items()
            if not available
        )
