"""Result models returned by the moderator tools.

The models serialize with camelCase keys so tool results keep the
payload shape moderators and transcript renderers already understand.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


VOTE_YES_LABEL = "赞成"
VOTE_NO_LABEL = "反对"
NO_REASON_GIVEN = "No reason given"


class ToolPayload(BaseModel):
    """Base model for tool results."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        """Serialize to the JSON-compatible tool result shape."""
        return self.model_dump(by_alias=True, mode="json")


class SpeakResult(ToolPayload):
    """Result of asking one participant to speak."""

    task_id: str
    participant_id: str
    reply: str


class VoteRecord(ToolPayload):
    """One participant's parsed vote."""

    agent_id: str
    agent_name: str
    agree: bool
    reason: str
    timestamp: int = Field(..., description="Milliseconds since the epoch")
    error: Optional[str] = None


class VoteBreakdownEntry(ToolPayload):
    """Human-readable view of a vote record."""

    agent: str
    vote: Literal["赞成", "反对"]
    reason: str

    @classmethod
    def from_record(cls, record: VoteRecord) -> "VoteBreakdownEntry":
        return cls(
            agent=record.agent_name,
            vote=VOTE_YES_LABEL if record.agree else VOTE_NO_LABEL,
            reason=record.reason or NO_REASON_GIVEN,
        )


class VoteResult(ToolPayload):
    """Tally of a completed voting round."""

    vote_round: int
    total_votes: int
    yes_votes: int
    no_votes: int
    agreement_ratio: float
    consensus_reached: bool
    vote_records: List[VoteRecord]
    vote_breakdown: List[VoteBreakdownEntry]
    dissenting_agents: List[str]
    needs_follow_up: bool
    vote_limit_reached: Literal[False] = False
    max_rounds: int


class VoteLimitReached(ToolPayload):
    """Returned instead of a tally once the round limit is exceeded."""

    vote_limit_reached: Literal[True] = True
    round_count: int
    max_rounds: int
    message: str


class DissentingAgent(ToolPayload):
    id: str
    name: str


class NewMessage(ToolPayload):
    """A message the dissent tool added to the transcript."""

    type: Literal["human"] = "human"
    content: str


class DissentResult(ToolPayload):
    """Result of inviting dissenters to explain their objections."""

    message: str
    dissenting_agents: List[DissentingAgent] = Field(default_factory=list)
    new_messages: List[NewMessage] = Field(default_factory=list)
    failed_agents: List[str] = Field(
        default_factory=list, description="Dissenters whose statement could not be collected"
    )
