"""Sub-agent dispatcher for Consensus Agora.

This module runs participant sessions on behalf of the moderator tools.
Each dispatch gets a fresh, isolated session; its full transcript is
returned for the task store and only the final reply flows back into
the meeting.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Union

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage
from langgraph.errors import GraphRecursionError

from consensus_agora.agents.participant import ParticipantAgent
from consensus_agora.context.messages import (
    format_task_result,
    human_message,
    message_text,
    tool_result_message,
)
from consensus_agora.utils.exceptions import (
    DispatchError,
    DispatchTimeoutError,
    InvalidStateError,
)
from consensus_agora.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DispatchRequest:
    """One task to run against one participant."""

    task_id: str
    participant_id: str
    messages: Sequence[BaseMessage]  # Already filtered for the participant
    task_description: str


@dataclass
class DispatchResult:
    """Outcome of a successful dispatch."""

    task_id: str
    participant_id: str
    reply_text: str
    sub_transcript: List[BaseMessage] = field(default_factory=list)

    def to_tool_message(
        self, tool_name: str, tool_call_id: Optional[str] = None
    ) -> ToolMessage:
        """Build the tool result recorded in the meeting transcript.

        Args:
            tool_name: Name of the tool that requested the task
            tool_call_id: Id of the originating tool call (defaults to the task id)
        """
        return tool_result_message(
            tool_call_id or self.task_id,
            format_task_result(self.task_id, self.reply_text),
            tool_name,
        )

    def task_store_entry(self) -> Dict[str, List[BaseMessage]]:
        """Task store update for this dispatch."""
        return {self.task_id: list(self.sub_transcript)}


class SubAgentDispatcher:
    """Runs isolated participant sessions.

    No retries happen here; the chat model collaborator owns retry
    behaviour.
    """

    def __init__(
        self,
        agents: Mapping[str, ParticipantAgent],
        recursion_limit: int = 25,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize the dispatcher.

        Args:
            agents: Participant agents keyed by participant id
            recursion_limit: Step limit for each session
            timeout_seconds: Optional wall-clock limit for each session
        """
        self.agents = dict(agents)
        self.recursion_limit = recursion_limit
        self.timeout_seconds = timeout_seconds

    def get_agent(self, participant_id: str) -> ParticipantAgent:
        agent = self.agents.get(participant_id)
        if agent is None:
            raise InvalidStateError(
                f"Unknown participant: {participant_id}",
                operation="dispatch",
                details={"known": sorted(self.agents)},
            )
        return agent

    async def dispatch(
        self,
        task_id: str,
        participant_id: str,
        filtered_messages: Sequence[BaseMessage],
        task_description: str,
    ) -> DispatchResult:
        """Run one participant session.

        Args:
            task_id: Unique id of the task
            participant_id: Participant to run
            filtered_messages: The participant's view of the meeting
            task_description: Instruction appended as the final input message

        Returns:
            DispatchResult with the final reply and the full session transcript

        Raises:
            InvalidStateError: If the participant is unknown
            DispatchTimeoutError: If the session exceeds its step or time bound
            DispatchError: If the session fails for any other reason
        """
        agent = self.get_agent(participant_id)
        session_input = list(filtered_messages) + [human_message(task_description)]

        logger.debug(
            f"Dispatching task {task_id} to {participant_id} "
            f"({len(session_input)} input messages)"
        )

        try:
            session = agent.ainvoke(
                session_input, recursion_limit=self.recursion_limit, run_name=task_id
            )
            if self.timeout_seconds is not None:
                transcript = await asyncio.wait_for(session, timeout=self.timeout_seconds)
            else:
                transcript = await session
        except GraphRecursionError as e:
            logger.error(f"Task {task_id} for {participant_id} hit the recursion limit")
            raise DispatchTimeoutError(
                f"Session exceeded {self.recursion_limit} steps",
                task_id=task_id,
                participant_id=participant_id,
                limit=self.recursion_limit,
            ) from e
        except asyncio.TimeoutError as e:
            logger.error(
                f"Task {task_id} for {participant_id} timed out after {self.timeout_seconds}s"
            )
            raise DispatchTimeoutError(
                f"Session exceeded {self.timeout_seconds}s",
                task_id=task_id,
                participant_id=participant_id,
                limit=self.timeout_seconds,
            ) from e
        except Exception as e:
            logger.error(f"Task {task_id} for {participant_id} failed: {e}")
            raise DispatchError(
                f"Session failed: {e}",
                task_id=task_id,
                participant_id=participant_id,
                details={"error_type": type(e).__name__},
            ) from e

        reply_text = _final_reply(transcript)
        logger.debug(f"Task {task_id} for {participant_id} finished ({len(reply_text)} chars)")

        return DispatchResult(
            task_id=task_id,
            participant_id=participant_id,
            reply_text=reply_text,
            sub_transcript=list(transcript),
        )

    async def dispatch_many(
        self, requests: Sequence[DispatchRequest]
    ) -> List[Union[DispatchResult, DispatchError]]:
        """Run several sessions concurrently.

        Results are returned in request order regardless of completion
        order. A failed dispatch is returned as its DispatchError.
        """
        outcomes = await asyncio.gather(
            *(
                self.dispatch(r.task_id, r.participant_id, r.messages, r.task_description)
                for r in requests
            ),
            return_exceptions=True,
        )

        results: List[Union[DispatchResult, DispatchError]] = []
        for outcome in outcomes:
            if isinstance(outcome, DispatchError):
                results.append(outcome)
            elif isinstance(outcome, BaseException):
                # InvalidStateError and cancellation are not dispatch failures
                raise outcome
            else:
                results.append(outcome)
        return results


def _final_reply(transcript: Sequence[BaseMessage]) -> str:
    """Text of the last AI message in a session transcript."""
    for message in reversed(transcript):
        if isinstance(message, AIMessage):
            return message_text(message).strip()
    return ""
