"""Agent implementations for Consensus Agora."""

from .participant import ParticipantAgent
from .factory import AgentFactory, create_chat_model

__all__ = ["AgentFactory", "ParticipantAgent", "create_chat_model"]
