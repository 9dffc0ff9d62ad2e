"""State schema definitions for Consensus Agora.

This module defines the meeting state shared by every moderator tool.
It uses TypedDict for state definition with proper type hints and
reducers for append-only fields, so the same schema can back a
LangGraph ``StateGraph``.
"""

from datetime import datetime
from typing import TypedDict, Annotated, List, Dict, Optional
from typing_extensions import NotRequired

from langgraph.graph.message import add_messages
from langchain_core.messages import BaseMessage

from consensus_agora.config.models import ParticipantConfig
from .reducers import append_items, merge_task_store, increment_counter


class Ballot(TypedDict):
    """One participant's decision in a voting round."""

    participant_id: str
    participant_name: str
    agree: bool
    rationale: str
    timestamp: datetime
    error: NotRequired[str]  # Set when the vote could not be collected


class VotingRound(TypedDict):
    """A completed voting round."""

    round_number: int
    proposal: Optional[str]
    ballots: List[Ballot]
    consensus_reached: bool
    timestamp: datetime


class MeetingState(TypedDict):
    """Complete state for one meeting.

    Fields with Annotated[..., reducer] are merged through the given
    reducer when an update is applied; all other fields are replaced.
    """

    # Meeting metadata
    meeting_id: str
    topic: str
    started_at: datetime

    # Transcript (append-only)
    messages: Annotated[List[BaseMessage], add_messages]

    # Fixed for the lifetime of the meeting
    participants: List[ParticipantConfig]

    # Voting
    vote_history: Annotated[List[VotingRound], append_items]
    round_count: Annotated[int, increment_counter]
    max_rounds: int
    consensus_threshold: float  # Not used by the tally, see config

    # Task id -> complete sub-transcript of that task
    task_store: Annotated[Dict[str, List[BaseMessage]], merge_task_store]


class SessionState(TypedDict):
    """State of one isolated participant session."""

    messages: Annotated[List[BaseMessage], add_messages]
