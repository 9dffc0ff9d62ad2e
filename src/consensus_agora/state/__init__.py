"""State management for Consensus Agora.

This module provides the meeting state schema, its reducers, and the
manager that applies updates to it.
"""

from .schema import Ballot, MeetingState, SessionState, VotingRound
from .manager import MeetingStateManager

__all__ = [
    "Ballot",
    "MeetingState",
    "MeetingStateManager",
    "SessionState",
    "VotingRound",
]
