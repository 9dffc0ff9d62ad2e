"""Moderator tool surface for Consensus Agora.

This module exposes the meeting operations the moderator can call:
asking one participant to speak, polling everyone, and inviting the
dissenters of a failed vote to explain themselves. Tool calls are
executed against the meeting state and recorded as ToolMessages.
"""

import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from langchain_core.messages import ToolMessage
from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from consensus_agora.config.models import ParticipantConfig
from consensus_agora.context.filters import MessageFilter, filter_messages
from consensus_agora.context.messages import (
    parse_speak_tool_name,
    speak_tool_name,
    tool_result_message,
)
from consensus_agora.orchestration.dispatcher import SubAgentDispatcher
from consensus_agora.orchestration.dissent import DissentResolutionCoordinator
from consensus_agora.orchestration.models import (
    DissentResult,
    SpeakResult,
    VoteLimitReached,
    VoteResult,
)
from consensus_agora.orchestration.voting import VotingCoordinator
from consensus_agora.state.manager import MeetingStateManager
from consensus_agora.utils.exceptions import ConsensusAgoraError, InvalidStateError
from consensus_agora.utils.logging import get_logger


logger = get_logger(__name__)

VOTE_TOOL_NAME = "ask_everyone_to_vote"
DISSENT_TOOL_NAME = "ask_dissenting_agents_to_speak"

VOTE_TOOL_DESCRIPTION = """Ask every participant to vote and tally the result.

Use this after a round of discussion to check whether the meeting agrees.
Consensus requires that every participant votes yes.

The result contains voteRound, totalVotes, yesVotes, noVotes,
agreementRatio, consensusReached, voteBreakdown (agent, vote, reason),
dissentingAgents (ids of participants who voted no), needsFollowUp,
voteLimitReached and maxRounds.

- If voteLimitReached is true, no further votes are possible: write a
  dissent report and end the meeting.
- If consensusReached is true, summarize the agreed outcome and end the meeting.
- Otherwise invite the dissenters to explain themselves, let the supporters
  respond, and vote again."""

DISSENT_TOOL_DESCRIPTION = """Invite the participants who voted no to explain their objections.

Use this after ask_everyone_to_vote returned consensusReached=false.
Pass the ids from dissentingAgents and a short reason why consensus was
not reached. Each dissenter states their core objection, risks, required
adjustments and proposed improvements; the combined statement is added to
the meeting. Afterwards let the supporters respond, then vote again."""


def create_error_tool_message(
    tool_call_id: str, tool_name: str, error: Exception
) -> ToolMessage:
    """Create a ToolMessage for a failed tool call.

    Args:
        tool_call_id: ID of the failed tool call
        tool_name: Name of the tool
        error: The exception that occurred

    Returns:
        ToolMessage with status "error"
    """
    error_type = type(error).__name__
    return ToolMessage(
        content=f"Tool execution failed: {error_type}\nMessage: {error}",
        name=tool_name,
        tool_call_id=tool_call_id,
        status="error",
        additional_kwargs={
            "error_type": error_type,
            "timestamp": datetime.now().isoformat(),
        },
    )


# Pydantic models for tool inputs
class SpeakInput(BaseModel):
    """Input schema for the speak tools."""

    task_description: str = Field(
        description="Describe the state of the meeting and what you want the participant to do."
    )
    task_id: Optional[str] = Field(
        default=None,
        description="Task id to use; the tool call id is used if not provided.",
    )


class VoteInput(BaseModel):
    """Input schema for the vote tool."""

    proposal: Optional[str] = Field(
        default=None,
        description=(
            "The proposal being voted on. Recommended so participants know exactly "
            "what they vote on; defaults to the preceding discussion."
        ),
    )


class DissentInput(BaseModel):
    """Input schema for the dissent tool."""

    dissenting_agent_ids: List[str] = Field(
        description="Ids of the participants who voted no (from dissentingAgents)."
    )
    reason: str = Field(description="Short summary of why consensus was not reached.")


class MeetingTools:
    """The operations a moderator can perform on a meeting."""

    def __init__(
        self,
        state_manager: MeetingStateManager,
        dispatcher: SubAgentDispatcher,
        speak_filter: Union[MessageFilter, str] = MessageFilter.DISCUSSION,
    ):
        """Initialize the tool surface.

        Args:
            state_manager: Manager of the meeting state
            dispatcher: Dispatcher running participant sessions
            speak_filter: What a participant sees when asked to speak
        """
        self.state_manager = state_manager
        self.dispatcher = dispatcher
        self.speak_filter = MessageFilter(speak_filter)
        self.voting = VotingCoordinator(state_manager, dispatcher)
        self.dissent = DissentResolutionCoordinator(state_manager, dispatcher)

    async def ask_participant_to_speak(
        self,
        participant_id: str,
        task_description: str,
        task_id: Optional[str] = None,
        tool_call_id: Optional[str] = None,
    ) -> SpeakResult:
        """Ask one participant to speak and record the reply.

        Raises:
            InvalidStateError: If the participant is unknown
            DispatchError: If the participant session fails
        """
        result, _ = await self._speak(participant_id, task_description, task_id, tool_call_id)
        return result

    async def _speak(
        self,
        participant_id: str,
        task_description: str,
        task_id: Optional[str],
        tool_call_id: Optional[str],
    ) -> Tuple[SpeakResult, ToolMessage]:
        state = self.state_manager
        if state.get_participant(participant_id) is None:
            raise InvalidStateError(
                f"Unknown participant: {participant_id}", operation="speak"
            )

        task_id = task_id or tool_call_id or f"speak_{uuid.uuid4().hex[:12]}"
        view = filter_messages(state.messages, participant_id, self.speak_filter)
        result = await self.dispatcher.dispatch(task_id, participant_id, view, task_description)

        message = result.to_tool_message(speak_tool_name(participant_id), tool_call_id)
        state.merge_task_results(result.task_store_entry())
        state.append_tool_result(message)

        return (
            SpeakResult(
                task_id=result.task_id,
                participant_id=participant_id,
                reply=result.reply_text,
            ),
            message,
        )

    async def ask_everyone_to_vote(
        self, proposal: Optional[str] = None, task_id: Optional[str] = None
    ) -> Union[VoteResult, VoteLimitReached]:
        """Poll every participant; see :class:`VotingCoordinator`."""
        return await self.voting.vote(proposal=proposal, task_id=task_id)

    async def ask_dissenting_agents_to_speak(
        self,
        dissenting_ids: List[str],
        reason: str,
        task_id: Optional[str] = None,
    ) -> DissentResult:
        """Invite dissenters to speak; see :class:`DissentResolutionCoordinator`."""
        return await self.dissent.resolve(dissenting_ids, reason, task_id=task_id)

    async def execute_tool_call(self, tool_call: Dict[str, Any]) -> ToolMessage:
        """Execute a LangChain tool call and record its result.

        The tool call id doubles as the task id. Meeting errors and
        invalid arguments are reported back as error ToolMessages.

        Args:
            tool_call: Tool call dict with ``name``, ``args`` and ``id``

        Returns:
            The ToolMessage appended to the transcript
        """
        name = tool_call["name"]
        args = tool_call.get("args") or {}
        call_id = tool_call.get("id") or f"call_{uuid.uuid4().hex[:12]}"
        logger.debug(f"Executing tool call {call_id}: {name}")

        try:
            if name == VOTE_TOOL_NAME:
                params = VoteInput.model_validate(args)
                payload = await self.ask_everyone_to_vote(params.proposal, task_id=call_id)
                message = self._record_payload(call_id, name, payload)
            elif name == DISSENT_TOOL_NAME:
                params = DissentInput.model_validate(args)
                payload = await self.ask_dissenting_agents_to_speak(
                    params.dissenting_agent_ids, params.reason, task_id=call_id
                )
                message = self._record_payload(call_id, name, payload)
            else:
                participant_id = parse_speak_tool_name(name)
                if participant_id is None:
                    raise InvalidStateError(f"Unknown tool: {name}", operation="execute_tool_call")
                params = SpeakInput.model_validate(args)
                _, message = await self._speak(
                    participant_id,
                    params.task_description,
                    params.task_id or call_id,
                    call_id,
                )
        except (ConsensusAgoraError, PydanticValidationError) as e:
            logger.error(f"Tool call {name} failed: {e}")
            message = create_error_tool_message(call_id, name, e)
            self.state_manager.append_tool_result(message)

        return message

    def _record_payload(
        self,
        call_id: str,
        tool_name: str,
        payload: Union[VoteResult, VoteLimitReached, DissentResult],
    ) -> ToolMessage:
        content = json.dumps(payload.to_payload(), ensure_ascii=False)
        message = tool_result_message(call_id, content, tool_name)
        self.state_manager.append_tool_result(message)
        return message

    def as_tools(self) -> List[BaseTool]:
        """Build LangChain tools for ``bind_tools``.

        Every tool runs through :meth:`execute_tool_call`, so a direct
        invocation records its ToolMessage, uses the same task ids and
        reports failures the same way. The result is the recorded
        message content.

        Returns:
            One speak tool per participant, the vote tool and the dissent tool
        """
        tools: List[BaseTool] = [
            self._make_speak_tool(p) for p in self.state_manager.participants
        ]

        async def ask_everyone_to_vote(proposal: Optional[str] = None) -> str:
            return await self._run_tool(VOTE_TOOL_NAME, {"proposal": proposal})

        async def ask_dissenting_agents_to_speak(
            dissenting_agent_ids: List[str], reason: str
        ) -> str:
            return await self._run_tool(
                DISSENT_TOOL_NAME,
                {"dissenting_agent_ids": dissenting_agent_ids, "reason": reason},
            )

        tools.append(
            StructuredTool.from_function(
                coroutine=ask_everyone_to_vote,
                name=VOTE_TOOL_NAME,
                description=VOTE_TOOL_DESCRIPTION,
                args_schema=VoteInput,
            )
        )
        tools.append(
            StructuredTool.from_function(
                coroutine=ask_dissenting_agents_to_speak,
                name=DISSENT_TOOL_NAME,
                description=DISSENT_TOOL_DESCRIPTION,
                args_schema=DissentInput,
            )
        )
        return tools

    async def _run_tool(self, name: str, args: Dict[str, Any]) -> str:
        message = await self.execute_tool_call({"name": name, "args": args, "id": None})
        return message.content

    def _make_speak_tool(self, participant: ParticipantConfig) -> BaseTool:
        tool_name = speak_tool_name(participant.id)

        async def speak(task_description: str, task_id: Optional[str] = None) -> str:
            return await self._run_tool(
                tool_name, {"task_description": task_description, "task_id": task_id}
            )

        description = f"Ask {participant.display_name} to speak."
        if participant.description:
            description += f" {participant.description}"

        return StructuredTool.from_function(
            coroutine=speak,
            name=tool_name,
            description=description,
            args_schema=SpeakInput,
        )
