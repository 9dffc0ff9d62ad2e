"""Configuration schema definitions for Consensus Agora.

This module defines Pydantic models for validating and parsing
the YAML meeting configuration file.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from consensus_agora.utils.logging import get_logger


logger = get_logger(__name__)

# Participant ids end up inside tool names (ask_<id>_speak)
PARTICIPANT_ID_PATTERN = r"^[A-Za-z0-9-]+$"


class Provider(str, Enum):
    """Supported LLM providers."""

    GOOGLE = "google"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROK = "grok"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Provider"]:
        """Handle case-insensitive provider names."""
        if isinstance(value, str):
            value_lower = value.lower()
            for member in cls:
                if member.value == value_lower:
                    return member
        return None


class SpeakFilter(str, Enum):
    """Context filter modes allowed for the speak tool."""

    DISCUSSION = "discussion"
    DISCUSSION_WITH_REPLIES = "discussion_with_replies"


class ModelConfig(BaseModel):
    """Chat model settings handed to the LLM factory.

    The orchestration core never reads these fields; they only travel
    from configuration to :mod:`consensus_agora.agents.factory`.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    provider: Provider = Field(..., description="LLM provider (e.g., openai, anthropic)")
    model: str = Field(..., description="Model name/ID", min_length=1)
    temperature: Optional[float] = Field(
        default=0.7, ge=0.0, le=2.0, description="Sampling temperature"
    )
    max_tokens: Optional[int] = Field(
        default=None, gt=0, description="Maximum tokens per reply"
    )


class ParticipantConfig(BaseModel):
    """Configuration for one meeting participant.

    Participants are fixed for the lifetime of a meeting. Each one is
    driven by its own chat model and sees the meeting only through the
    context filter.
    """

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        description="Unique participant identifier",
        min_length=1,
        pattern=PARTICIPANT_ID_PATTERN,
    )
    display_name: str = Field(..., description="Name shown in summaries", min_length=1)
    description: str = Field(
        default="", description="What this participant is responsible for"
    )
    perspective: str = Field(
        ..., description="The evaluative stance this participant argues from"
    )
    system_prompt: Optional[str] = Field(
        default=None, description="Additional instructions for this participant"
    )
    model: ModelConfig = Field(..., description="Chat model for this participant")


class ModeratorConfig(BaseModel):
    """Configuration for the moderator (the meeting's decision oracle)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    provider: Provider = Field(..., description="LLM provider for the moderator")
    model: str = Field(..., description="Model name/ID for the moderator", min_length=1)
    temperature: Optional[float] = Field(default=0.7, ge=0.0, le=2.0)
    system_prompt: Optional[str] = Field(
        default=None, description="Extra instructions appended to the moderator prompt"
    )

    def to_model_config(self) -> ModelConfig:
        """Return the chat model settings of the moderator."""
        return ModelConfig(
            provider=self.provider, model=self.model, temperature=self.temperature
        )


class MeetingConfig(BaseModel):
    """Meeting-level parameters."""

    model_config = ConfigDict(str_strip_whitespace=True)

    topic: str = Field(..., description="What the meeting has to agree on", min_length=1)
    initial_proposal: Optional[str] = Field(
        default=None, description="Optional proposal to seed the discussion with"
    )
    max_rounds: int = Field(
        default=5, ge=1, description="Maximum number of voting rounds"
    )
    consensus_threshold: float = Field(
        default=1.0,
        gt=0.0,
        le=1.0,
        description="Kept for compatibility; voting always requires unanimity",
    )
    speak_filter: SpeakFilter = Field(
        default=SpeakFilter.DISCUSSION,
        description="What a participant sees when asked to speak",
    )
    participant_recursion_limit: int = Field(
        default=25, ge=1, description="Step limit for one participant session"
    )
    moderator_step_limit: int = Field(
        default=200, ge=1, description="Maximum moderator turns per meeting"
    )
    dispatch_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Wall-clock limit for one participant session"
    )

    @field_validator("consensus_threshold")
    @classmethod
    def warn_partial_threshold(cls, v: float) -> float:
        """Accept ratio thresholds but warn that unanimity is enforced."""
        if v != 1.0:
            logger.warning(
                f"consensus_threshold={v} is ignored; consensus requires unanimous agreement"
            )
        return v


class Config(BaseModel):
    """Root configuration model for Consensus Agora."""

    model_config = ConfigDict(str_strip_whitespace=True)

    meeting: MeetingConfig = Field(..., description="Meeting parameters")
    moderator: ModeratorConfig = Field(..., description="Moderator configuration")
    participants: list[ParticipantConfig] = Field(
        ..., description="Meeting participants", min_length=1
    )

    @model_validator(mode="after")
    def validate_participants(self) -> "Config":
        """Participant ids must be unique and must not shadow the moderator."""
        seen: set[str] = set()
        for participant in self.participants:
            if participant.id == "moderator":
                raise ValueError("Participant id 'moderator' is reserved")
            if participant.id in seen:
                raise ValueError(f"Duplicate participant id: {participant.id}")
            seen.add(participant.id)
        return self

    def get_participant_ids(self) -> list[str]:
        """Get the participant ids in configuration order."""
        return [p.id for p in self.participants]
