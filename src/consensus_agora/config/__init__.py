"""Configuration management for Consensus Agora.

This module handles loading, parsing, and validating configuration
from YAML files and environment variables.
"""

from .models import (
    Config,
    MeetingConfig,
    ModeratorConfig,
    ModelConfig,
    ParticipantConfig,
    Provider,
    SpeakFilter,
)
from .loader import ConfigLoader

__all__ = [
    "Config",
    "ConfigLoader",
    "MeetingConfig",
    "ModeratorConfig",
    "ModelConfig",
    "ParticipantConfig",
    "Provider",
    "SpeakFilter",
]
