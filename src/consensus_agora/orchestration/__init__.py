"""Consensus orchestration: dispatching, voting and dissent resolution."""

from .dispatcher import DispatchRequest, DispatchResult, SubAgentDispatcher
from .dissent import DissentResolutionCoordinator
from .models import (
    DissentResult,
    SpeakResult,
    VoteLimitReached,
    VoteResult,
)
from .voting import VoteParser, VotingCoordinator

__all__ = [
    "DispatchRequest",
    "DispatchResult",
    "DissentResolutionCoordinator",
    "DissentResult",
    "SpeakResult",
    "SubAgentDispatcher",
    "VoteLimitReached",
    "VoteParser",
    "VoteResult",
    "VotingCoordinator",
]
