"""State management for Consensus Agora meetings.

This module provides a high-level interface for managing meeting
state, including initialization, reducer-based updates, and queries.
The manager is owned by a single moderator loop and is not thread-safe.
"""

import json
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union, get_type_hints

from langchain_core.messages import BaseMessage, messages_to_dict

from consensus_agora.config.models import Config, MeetingConfig, ParticipantConfig
from consensus_agora.context.messages import human_message
from consensus_agora.state.schema import MeetingState, VotingRound
from consensus_agora.utils.exceptions import InvalidStateError
from consensus_agora.utils.logging import get_logger


logger = get_logger(__name__)


def _collect_reducers() -> Dict[str, Callable[[Any, Any], Any]]:
    """Read the reducer of every Annotated field of MeetingState."""
    reducers = {}
    for name, hint in get_type_hints(MeetingState, include_extras=True).items():
        metadata = getattr(hint, "__metadata__", None)
        if metadata:
            reducers[name] = metadata[0]
    return reducers


_REDUCERS = _collect_reducers()


class MeetingStateManager:
    """Manages the state of one meeting."""

    def __init__(self, meeting: MeetingConfig, participants: Sequence[ParticipantConfig]):
        """Initialize state manager with configuration.

        Args:
            meeting: Meeting parameters
            participants: Participants, fixed for the lifetime of the meeting
        """
        self.meeting = meeting
        self._participants = list(participants)
        self._state: Optional[MeetingState] = None
        self._batch_depth = 0
        self._deferred: List[BaseMessage] = []

    @classmethod
    def from_config(cls, config: Config) -> "MeetingStateManager":
        """Create a manager from a root configuration."""
        return cls(config.meeting, config.participants)

    def initialize_state(self, meeting_id: Optional[str] = None) -> MeetingState:
        """Initialize a new state for a meeting.

        The transcript is seeded with one message holding the topic and,
        if configured, the initial proposal.

        Args:
            meeting_id: Optional meeting ID (generated if not provided)

        Returns:
            Initialized state
        """
        if meeting_id is None:
            meeting_id = datetime.now().strftime("%Y%m%d_%H%M%S_") + str(uuid.uuid4())[:8]

        opening = f"Meeting topic: {self.meeting.topic}"
        if self.meeting.initial_proposal:
            opening += f"\n\nInitial proposal:\n{self.meeting.initial_proposal}"

        self._state = MeetingState(
            meeting_id=meeting_id,
            topic=self.meeting.topic,
            started_at=datetime.now(),
            messages=[],
            participants=list(self._participants),
            vote_history=[],
            round_count=0,
            max_rounds=self.meeting.max_rounds,
            consensus_threshold=self.meeting.consensus_threshold,
            task_store={},
        )
        self.apply_update({"messages": [human_message(opening)]})

        logger.info(
            f"Initialized meeting {meeting_id} with {len(self._participants)} participants "
            f"(max_rounds={self.meeting.max_rounds})"
        )
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> MeetingState:
        """Get current state.

        Raises:
            InvalidStateError: If the state has not been initialized
        """
        if self._state is None:
            raise InvalidStateError("Meeting state not initialized", operation="state")
        return self._state

    def apply_update(self, update: Dict[str, Any]) -> MeetingState:
        """Apply an update to the state.

        Annotated fields are merged through their reducer; other fields
        are replaced.

        Args:
            update: Mapping of field name to update value

        Returns:
            The updated state
        """
        state = self.state
        for key, value in update.items():
            if key not in MeetingState.__annotations__:
                raise InvalidStateError(f"Unknown state field: {key}", operation="apply_update")
            reducer = _REDUCERS.get(key)
            if reducer is not None:
                state[key] = reducer(state.get(key), value)
            else:
                state[key] = value
        return state

    # Transcript

    @property
    def messages(self) -> List[BaseMessage]:
        """The meeting transcript."""
        return self.state["messages"]

    def append_messages(self, *messages: BaseMessage) -> None:
        """Append messages to the transcript.

        Inside a :meth:`tool_batch`, non-tool messages are held back until
        the batch ends so that tool results directly follow the moderator
        turn that requested them.
        """
        if self._batch_depth:
            self._deferred.extend(messages)
        else:
            self.apply_update({"messages": list(messages)})

    def append_tool_result(self, message: BaseMessage) -> None:
        """Append a tool result, bypassing batch deferral."""
        self.apply_update({"messages": [message]})

    @contextmanager
    def tool_batch(self) -> Iterator[None]:
        """Group the tool results of one moderator turn."""
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if not self._batch_depth and self._deferred:
                deferred, self._deferred = self._deferred, []
                self.apply_update({"messages": deferred})

    # Participants

    @property
    def participants(self) -> List[ParticipantConfig]:
        """Meeting participants in configuration order."""
        return self.state["participants"]

    def get_participant(self, participant_id: str) -> Optional[ParticipantConfig]:
        """Look up a participant by id."""
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    # Voting

    @property
    def round_count(self) -> int:
        return self.state["round_count"]

    @property
    def max_rounds(self) -> int:
        return self.state["max_rounds"]

    @property
    def vote_history(self) -> List[VotingRound]:
        return self.state["vote_history"]

    @property
    def limit_reached(self) -> bool:
        """Whether no further polls may run."""
        return self.round_count > self.max_rounds

    def increment_round(self) -> int:
        """Count a vote attempt.

        Returns:
            The new round count
        """
        self.apply_update({"round_count": 1})
        return self.round_count

    def record_voting_round(self, voting_round: VotingRound) -> None:
        """Append a completed voting round to the history."""
        self.apply_update({"vote_history": voting_round})

    def latest_round(self) -> Optional[VotingRound]:
        """The most recent recorded voting round, if any."""
        history = self.vote_history
        return history[-1] if history else None

    # Task store

    @property
    def task_store(self) -> Dict[str, List[BaseMessage]]:
        return self.state["task_store"]

    def merge_task_results(self, entries: Dict[str, List[BaseMessage]]) -> None:
        """Merge sub-transcripts into the task store."""
        self.apply_update({"task_store": entries})

    # Archiving

    def export_snapshot(self) -> Dict[str, Any]:
        """Export the meeting for drill-down renderers.

        Returns:
            JSON-serializable mapping with transcript, vote history and
            task store
        """
        state = self.state
        return {
            "meetingId": state["meeting_id"],
            "topic": state["topic"],
            "startedAt": state["started_at"].isoformat(),
            "roundCount": state["round_count"],
            "maxRounds": state["max_rounds"],
            "participants": [p.model_dump(mode="json") for p in state["participants"]],
            "voteHistory": [_serialize_round(r) for r in state["vote_history"]],
            "messages": messages_to_dict(state["messages"]),
            "taskStore": {
                task_id: messages_to_dict(messages)
                for task_id, messages in state["task_store"].items()
            },
        }

    def save_snapshot(self, path: Union[str, Path]) -> Path:
        """Write :meth:`export_snapshot` to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.export_snapshot(), f, ensure_ascii=False, indent=2)
        logger.info(f"Saved meeting snapshot to {path}")
        return path


def _serialize_round(voting_round: VotingRound) -> Dict[str, Any]:
    return {
        "roundNumber": voting_round["round_number"],
        "proposal": voting_round["proposal"],
        "consensusReached": voting_round["consensus_reached"],
        "timestamp": voting_round["timestamp"].isoformat(),
        "ballots": [
            {
                "participantId": ballot["participant_id"],
                "participantName": ballot["participant_name"],
                "agree": ballot["agree"],
                "rationale": ballot["rationale"],
                "timestamp": ballot["timestamp"].isoformat(),
                **({"error": ballot["error"]} if "error" in ballot else {}),
            }
            for ballot in voting_round["ballots"]
        ],
    }
