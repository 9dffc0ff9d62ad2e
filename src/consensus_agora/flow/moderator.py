"""Moderator loop for Consensus Agora.

The moderator is a chat model bound to the meeting tools. It decides
which tool to call next; the loop executes the calls against the
meeting state and stops once the moderator answers without tool calls.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, SystemMessage

from consensus_agora.agents.factory import AgentFactory
from consensus_agora.config.models import Config, MeetingConfig
from consensus_agora.context.messages import MODERATOR_ID, message_text
from consensus_agora.orchestration.dispatcher import SubAgentDispatcher
from consensus_agora.state.manager import MeetingStateManager
from consensus_agora.tools.meeting_tools import (
    DISSENT_TOOL_NAME,
    VOTE_TOOL_NAME,
    MeetingTools,
)
from consensus_agora.utils.exceptions import MeetingStepLimitError
from consensus_agora.utils.logging import get_logger, log_meeting_transition

logger = get_logger(__name__)


class MeetingOutcome(Enum):
    """How a meeting ended."""

    CONSENSUS = "consensus"
    LIMIT_REACHED = "limit_reached"
    ENDED = "ended"  # Moderator stopped without consensus or limit


@dataclass
class MeetingResult:
    """Result of running a meeting to completion."""

    outcome: MeetingOutcome
    final_message: str
    steps: int
    round_count: int


def build_moderator_prompt(
    meeting: MeetingConfig,
    state_manager: MeetingStateManager,
    extra_instructions: Optional[str] = None,
) -> str:
    """Build the moderator system prompt.

    Args:
        meeting: Meeting parameters
        state_manager: Manager holding the participant roster
        extra_instructions: Optional instructions appended at the end
    """
    roster = "\n".join(
        f"- {p.display_name} (id: {p.id}): {p.description or p.perspective}"
        for p in state_manager.participants
    )
    prompt = f"""You are the meeting moderator. You have no opinion on the topic; you run the process.

Your responsibilities:
1. Open the meeting and introduce the topic and the participants.
2. Organize the discussion: ask the participants to speak, one task at a time.
3. Call {VOTE_TOOL_NAME} once the discussion has converged on a proposal.
4. If the vote is not unanimous, call {DISSENT_TOOL_NAME} with the dissenting ids, let the supporters respond, then vote again.
5. When consensus is reached, or the vote limit is reached, summarize the outcome and end the meeting by answering without calling a tool.

Rules:
- The meeting only succeeds when every participant votes yes.
- At most {meeting.max_rounds} voting rounds are allowed. Once a vote returns voteLimitReached, write a dissent report recording each side's position and the points that could not be reconciled.

Participants:
{roster}"""
    if extra_instructions:
        prompt += f"\n\n{extra_instructions}"
    return prompt


class MeetingOrchestrator:
    """Drives a meeting with a tool-calling moderator model."""

    def __init__(
        self,
        state_manager: MeetingStateManager,
        tools: MeetingTools,
        moderator_llm: BaseChatModel,
        step_limit: int = 200,
        moderator_instructions: Optional[str] = None,
    ):
        """Initialize the orchestrator.

        Args:
            state_manager: Manager of the meeting state
            tools: Tool surface the moderator may call
            moderator_llm: Chat model supporting ``bind_tools``
            step_limit: Maximum number of moderator turns
            moderator_instructions: Extra instructions for the moderator prompt
        """
        self.state_manager = state_manager
        self.tools = tools
        self.moderator_llm = moderator_llm
        self.step_limit = step_limit
        self.moderator_instructions = moderator_instructions

    @classmethod
    def from_config(
        cls,
        config: Config,
        chat_models: Optional[Mapping[str, BaseChatModel]] = None,
    ) -> "MeetingOrchestrator":
        """Build state, agents, dispatcher and tools from configuration.

        Args:
            config: Root configuration
            chat_models: Optional pre-built chat models keyed by participant
                id or ``"moderator"``
        """
        factory = AgentFactory(config, chat_models)
        meeting = config.meeting
        state_manager = MeetingStateManager.from_config(config)
        dispatcher = SubAgentDispatcher(
            factory.create_participants(),
            recursion_limit=meeting.participant_recursion_limit,
            timeout_seconds=meeting.dispatch_timeout_seconds,
        )
        tools = MeetingTools(state_manager, dispatcher, speak_filter=meeting.speak_filter.value)
        return cls(
            state_manager,
            tools,
            factory.create_moderator_llm(),
            step_limit=meeting.moderator_step_limit,
            moderator_instructions=config.moderator.system_prompt,
        )

    async def run(self, meeting_id: Optional[str] = None) -> MeetingResult:
        """Run the meeting until the moderator stops calling tools.

        Args:
            meeting_id: Optional meeting id, used if the state is not yet initialized

        Returns:
            MeetingResult describing how the meeting ended

        Raises:
            MeetingStepLimitError: If the moderator exceeds ``step_limit`` turns
        """
        state = self.state_manager
        if not state.is_initialized:
            state.initialize_state(meeting_id)

        system_prompt = SystemMessage(
            content=build_moderator_prompt(
                state.meeting, state, self.moderator_instructions
            )
        )
        llm = self.moderator_llm.bind_tools(self.tools.as_tools())
        log_meeting_transition("setup", "discussion", f"meeting {state.state['meeting_id']}")

        for step in range(1, self.step_limit + 1):
            response = await llm.ainvoke([system_prompt] + list(state.messages))
            if not isinstance(response, AIMessage):
                response = AIMessage(content=response.content)
            response.name = MODERATOR_ID
            state.append_messages(response)

            if not response.tool_calls:
                result = self._finish(message_text(response), step)
                log_meeting_transition("discussion", result.outcome.value)
                return result

            logger.debug(
                f"Moderator step {step}: "
                f"{', '.join(call['name'] for call in response.tool_calls)}"
            )
            with state.tool_batch():
                for tool_call in response.tool_calls:
                    await self.tools.execute_tool_call(tool_call)

        logger.error(f"Moderator exceeded {self.step_limit} steps")
        raise MeetingStepLimitError(
            f"Moderator did not finish within {self.step_limit} steps",
            step_limit=self.step_limit,
            details={"round_count": state.round_count},
        )

    def _finish(self, final_message: str, steps: int) -> MeetingResult:
        state = self.state_manager
        latest = state.latest_round()
        if latest is not None and latest["consensus_reached"]:
            outcome = MeetingOutcome.CONSENSUS
        elif state.limit_reached:
            outcome = MeetingOutcome.LIMIT_REACHED
        else:
            outcome = MeetingOutcome.ENDED

        logger.info(
            f"Meeting ended after {steps} moderator steps: {outcome.value} "
            f"({state.round_count} vote attempts)"
        )
        return MeetingResult(
            outcome=outcome,
            final_message=final_message,
            steps=steps,
            round_count=state.round_count,
        )
